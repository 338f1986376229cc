"""Host Ledger — интерфейс платформы, исполняющей решения engine.

Хранение records, проверка подписей, transfer/mint/burn и атомарный
commit — ответственность host. Engine только решает, что должно
произойти.

Контракт транзакции:
- все движения assets и записи records одной операции коммитятся вместе
  или не коммитятся вовсе
- операции над одним basket сериализуются host'ом
"""

from typing import ContextManager, Iterable, Optional, Protocol

from src.core.domain.basket import Basket
from src.core.domain.compliance import KycRecord
from src.core.domain.position import Position


# =============================================================================
# HOST ERRORS
# =============================================================================


class LedgerError(Exception):
    """Базовая ошибка host ledger."""
    pass


class RecordNotFound(LedgerError):
    """Запрошенный record отсутствует."""
    pass


class RecordAlreadyExists(LedgerError):
    """Попытка создать существующий record."""
    pass


class InsufficientFunds(LedgerError):
    """Недостаточный баланс для transfer/burn."""
    pass


class ConcurrentModification(LedgerError):
    """Record или баланс изменён другой транзакцией между чтением и commit."""
    pass


class SignatureRequired(LedgerError):
    """Операция требует подписи identity, которой нет среди signers."""
    pass


class ContractViolation(LedgerError):
    """Сохраняемый record нарушает свой JSON Schema контракт."""
    pass


# =============================================================================
# INTERFACES
# =============================================================================


class LedgerTransaction(Protocol):
    """Одна атомарная операция host ledger."""

    def verify_caller(self, expected_identity: str) -> bool: ...

    def has_basket(self, basket_id: str) -> bool: ...

    def load_basket(self, basket_id: str) -> Basket: ...

    def save_basket(self, basket: Basket) -> None: ...

    def load_position(self, basket_id: str, holder: str) -> Optional[Position]: ...

    def save_position(self, position: Position) -> None: ...

    def load_kyc_record(self, basket_id: str, user: str) -> Optional[KycRecord]: ...

    def save_kyc_record(self, record: KycRecord) -> None: ...

    def transfer_base_asset(self, asset_id: str, source: str, destination: str, amount: int) -> None: ...

    def mint_share_asset(self, asset_id: str, destination: str, amount: int) -> None: ...

    def burn_share_asset(self, asset_id: str, source: str, amount: int) -> None: ...

    def balance_of(self, asset_id: str, account: str) -> int: ...

    def current_total_share_supply(self, basket: Basket) -> int: ...


class HostLedger(Protocol):
    """Host platform: открывает сериализованные по ключу транзакции."""

    def transaction(
        self, signers: Iterable[str], lock_key: str
    ) -> ContextManager[LedgerTransaction]: ...
