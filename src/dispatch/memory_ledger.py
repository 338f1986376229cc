"""In-Memory Ledger — host ledger для тестов, симуляций и локального запуска.

Гарантии:
- Эксклюзивная блокировка по lock_key (basket id) на всё время операции
- Записи и изменения балансов стейджатся в транзакции и применяются
  одним commit; исключение внутри транзакции отбрасывает всё
- Optimistic compare-and-swap по версиям records и прочитанным
  балансам при commit
- Каждый сохраняемый record проходит JSON Schema контракт;
  нарушение поднимается как ContractViolation
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

from jsonschema import ValidationError
from pydantic import BaseModel

from src.core.contracts import validate_record
from src.core.domain.basket import Basket
from src.core.domain.compliance import KycRecord
from src.core.domain.position import Position
from src.core.math.fixed_point import to_native_amount
from src.dispatch.host import (
    ConcurrentModification,
    ContractViolation,
    InsufficientFunds,
    RecordNotFound,
)

logger = logging.getLogger(__name__)

RecordKey = Tuple[str, ...]
BalanceKey = Tuple[str, str]


def _basket_key(basket_id: str) -> RecordKey:
    return ("basket", basket_id)


def _position_key(basket_id: str, holder: str) -> RecordKey:
    return ("position", basket_id, holder)


def _kyc_key(basket_id: str, user: str) -> RecordKey:
    return ("kyc", basket_id, user)


class InMemoryLedger:
    """Host ledger в памяти процесса.

    Балансы хранятся по (asset_id, account), supply — по asset_id.
    Records — по ключу с версией, увеличивающейся на каждый commit.
    """

    def __init__(self):
        self._records: Dict[RecordKey, Tuple[int, BaseModel]] = {}
        self._balances: Dict[BalanceKey, int] = {}
        self._supply: Dict[str, int] = {}

        self._commit_lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Committed state (read-only снаружи транзакций)
    # -------------------------------------------------------------------------

    def balance_of(self, asset_id: str, account: str) -> int:
        return self._balances.get((asset_id, account), 0)

    def total_supply(self, asset_id: str) -> int:
        return self._supply.get(asset_id, 0)

    def get_record(self, key: RecordKey) -> Optional[BaseModel]:
        entry = self._records.get(key)
        return entry[1] if entry else None

    def record_version(self, key: RecordKey) -> int:
        entry = self._records.get(key)
        return entry[0] if entry else 0

    def get_basket(self, basket_id: str) -> Optional[Basket]:
        return self.get_record(_basket_key(basket_id))

    def get_position(self, basket_id: str, holder: str) -> Optional[Position]:
        return self.get_record(_position_key(basket_id, holder))

    def fund(self, asset_id: str, account: str, amount: int) -> None:
        """Выпустить asset на аккаунт вне транзакции (bootstrap/airdrop)."""
        to_native_amount(amount, "amount")
        with self._commit_lock:
            key = (asset_id, account)
            self._balances[key] = self._balances.get(key, 0) + amount
            self._supply[asset_id] = self._supply.get(asset_id, 0) + amount
        logger.info("fund asset=%s account=%s amount=%d", asset_id, account, amount)

    # -------------------------------------------------------------------------
    # Транзакции
    # -------------------------------------------------------------------------

    def _lock_for(self, lock_key: str) -> threading.Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get(lock_key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[lock_key] = lock
            return lock

    @contextmanager
    def transaction(self, signers: Iterable[str], lock_key: str) -> Iterator["InMemoryTransaction"]:
        """Атомарная транзакция под эксклюзивной блокировкой lock_key.

        Commit выполняется только при нормальном выходе из блока.
        """
        with self._lock_for(lock_key):
            tx = InMemoryTransaction(self, set(signers))
            yield tx
            self._commit(tx)

    def _commit(self, tx: "InMemoryTransaction") -> None:
        with self._commit_lock:
            # CAS: ничего из прочитанного не должно было измениться
            for key, version in tx.read_versions.items():
                if self.record_version(key) != version:
                    raise ConcurrentModification(f"record {key} changed during transaction")
            for key, balance in tx.read_balances.items():
                if self.balance_of(*key) != balance:
                    raise ConcurrentModification(f"balance {key} changed during transaction")
            for asset_id, supply in tx.read_supply.items():
                if self.total_supply(asset_id) != supply:
                    raise ConcurrentModification(f"supply of {asset_id} changed during transaction")

            for key, record in tx.staged_records.items():
                self._records[key] = (self.record_version(key) + 1, record)
            self._balances.update(tx.staged_balances)
            self._supply.update(tx.staged_supply)

        logger.debug(
            "commit records=%d balances=%d", len(tx.staged_records), len(tx.staged_balances)
        )


class InMemoryTransaction:
    """Стейджинг одной операции поверх committed state InMemoryLedger."""

    def __init__(self, ledger: InMemoryLedger, signers: Set[str]):
        self._ledger = ledger
        self._signers = signers
        self.read_versions: Dict[RecordKey, int] = {}
        self.staged_records: Dict[RecordKey, BaseModel] = {}
        self.staged_balances: Dict[BalanceKey, int] = {}
        self.staged_supply: Dict[str, int] = {}
        self.read_balances: Dict[BalanceKey, int] = {}
        self.read_supply: Dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    def verify_caller(self, expected_identity: str) -> bool:
        return expected_identity in self._signers

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def _read(self, key: RecordKey) -> Optional[BaseModel]:
        if key in self.staged_records:
            return self.staged_records[key]
        self.read_versions.setdefault(key, self._ledger.record_version(key))
        return self._ledger.get_record(key)

    def _stage(self, key: RecordKey, record: BaseModel) -> None:
        try:
            validate_record(record)
        except ValidationError as e:
            field = "/".join(str(part) for part in e.absolute_path) or "<root>"
            raise ContractViolation(
                f"{type(record).__name__} violates its contract at {field}: {e.message}"
            ) from e
        self.read_versions.setdefault(key, self._ledger.record_version(key))
        self.staged_records[key] = record

    def has_basket(self, basket_id: str) -> bool:
        return self._read(_basket_key(basket_id)) is not None

    def load_basket(self, basket_id: str) -> Basket:
        basket = self._read(_basket_key(basket_id))
        if basket is None:
            raise RecordNotFound(f"basket {basket_id} not found")
        return basket

    def save_basket(self, basket: Basket) -> None:
        self._stage(_basket_key(basket.basket_id), basket)

    def load_position(self, basket_id: str, holder: str) -> Optional[Position]:
        return self._read(_position_key(basket_id, holder))

    def save_position(self, position: Position) -> None:
        self._stage(_position_key(position.basket, position.owner), position)

    def load_kyc_record(self, basket_id: str, user: str) -> Optional[KycRecord]:
        return self._read(_kyc_key(basket_id, user))

    def save_kyc_record(self, record: KycRecord) -> None:
        self._stage(_kyc_key(record.basket, record.user), record)

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    def balance_of(self, asset_id: str, account: str) -> int:
        key = (asset_id, account)
        if key in self.staged_balances:
            return self.staged_balances[key]
        return self.read_balances.setdefault(key, self._ledger.balance_of(asset_id, account))

    def _supply_of(self, asset_id: str) -> int:
        if asset_id in self.staged_supply:
            return self.staged_supply[asset_id]
        return self.read_supply.setdefault(asset_id, self._ledger.total_supply(asset_id))

    def _debit(self, asset_id: str, account: str, amount: int) -> None:
        balance = self.balance_of(asset_id, account)
        if balance < amount:
            raise InsufficientFunds(
                f"account {account} holds {balance} of {asset_id}, needs {amount}"
            )
        self.staged_balances[(asset_id, account)] = balance - amount

    def _credit(self, asset_id: str, account: str, amount: int) -> None:
        self.staged_balances[(asset_id, account)] = self.balance_of(asset_id, account) + amount

    def transfer_base_asset(self, asset_id: str, source: str, destination: str, amount: int) -> None:
        to_native_amount(amount, "amount")
        self._debit(asset_id, source, amount)
        self._credit(asset_id, destination, amount)

    def mint_share_asset(self, asset_id: str, destination: str, amount: int) -> None:
        to_native_amount(amount, "amount")
        self._credit(asset_id, destination, amount)
        self.staged_supply[asset_id] = self._supply_of(asset_id) + amount

    def burn_share_asset(self, asset_id: str, source: str, amount: int) -> None:
        to_native_amount(amount, "amount")
        self._debit(asset_id, source, amount)
        self.staged_supply[asset_id] = self._supply_of(asset_id) - amount

    def current_total_share_supply(self, basket: Basket) -> int:
        return self._supply_of(basket.share_asset_id)
