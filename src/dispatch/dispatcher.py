"""Basket Dispatcher — маппинг внешних запросов на engine и host ledger.

Порядок каждой операции:
1. Открыть транзакцию host под блокировкой basket
2. Проверить подпись действующей identity (verify_caller)
3. Загрузить records, вызвать accounting engine
4. Исполнить движения assets из решения
5. Сохранить records; commit при успехе, откат при любой ошибке
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Optional

from src.core.domain.basket import Basket
from src.core.domain.compliance import KycRecord
from src.core.domain.position import Position
from src.core.errors import BasketError, ComplianceRejected
from src.dispatch.host import (
    HostLedger,
    LedgerError,
    LedgerTransaction,
    RecordAlreadyExists,
    RecordNotFound,
    SignatureRequired,
)
from src.engine import accounting
from src.engine.config import EngineConfig, NavSource
from src.engine.decisions import (
    AssetMovement,
    ClaimDecision,
    DividendDecision,
    IssueDecision,
    MovementKind,
    RedeemDecision,
)
from src.engine.fees import FeeAccrual, NoOpFeeAccrual

logger = logging.getLogger(__name__)


def _unix_now() -> int:
    return int(time.time())


class BasketDispatcher:
    """Тонкий слой операций basket поверх HostLedger.

    Сам не содержит бизнес-логики: все решения принимает
    src.engine.accounting.
    """

    def __init__(
        self,
        ledger: HostLedger,
        config: Optional[EngineConfig] = None,
        fee_accrual: Optional[FeeAccrual] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            ledger: host ledger
            config: конфигурация политик engine
            fee_accrual: hook начисления fee (default: no-op)
            clock: источник unix-времени в секундах
        """
        self.ledger = ledger
        self.config = config or EngineConfig()
        self.fee_accrual = fee_accrual or NoOpFeeAccrual()
        self.clock = clock or _unix_now

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @contextmanager
    def _operation(
        self,
        name: str,
        basket_id: str,
        actor: str,
        signers: Optional[Iterable[str]],
    ) -> Iterator[LedgerTransaction]:
        signer_set = set(signers) if signers is not None else {actor}
        try:
            with self.ledger.transaction(signers=signer_set, lock_key=basket_id) as tx:
                if not tx.verify_caller(actor):
                    raise SignatureRequired(f"{name}: {actor} did not sign the request")
                yield tx
        except (BasketError, LedgerError, ValueError) as e:
            logger.warning(
                "%s rejected basket=%s actor=%s error=%s: %s",
                name, basket_id, actor, type(e).__name__, e,
            )
            raise

    @staticmethod
    def _execute(tx: LedgerTransaction, movements: Iterable[AssetMovement]) -> None:
        for movement in movements:
            if movement.kind == MovementKind.TRANSFER_BASE:
                tx.transfer_base_asset(
                    movement.asset_id, movement.source, movement.destination, movement.amount
                )
            elif movement.kind == MovementKind.MINT_SHARES:
                tx.mint_share_asset(movement.asset_id, movement.destination, movement.amount)
            elif movement.kind == MovementKind.BURN_SHARES:
                tx.burn_share_asset(movement.asset_id, movement.source, movement.amount)
            else:
                raise ValueError(f"Unknown movement kind: {movement.kind}")

    # -------------------------------------------------------------------------
    # Basket lifecycle
    # -------------------------------------------------------------------------

    def create_basket(
        self,
        admin: str,
        base_asset_id: str,
        share_asset_id: str,
        vault_id: str,
        management_fee_bps: Optional[int] = None,
        signers: Optional[Iterable[str]] = None,
    ) -> Basket:
        """Создать basket; ключ — share_asset_id."""
        fee_bps = (
            self.config.default_management_fee_bps
            if management_fee_bps is None
            else management_fee_bps
        )
        with self._operation("create_basket", share_asset_id, admin, signers) as tx:
            if tx.has_basket(share_asset_id):
                raise RecordAlreadyExists(f"basket {share_asset_id} already exists")
            basket = accounting.create_basket(
                admin=admin,
                base_asset_id=base_asset_id,
                share_asset_id=share_asset_id,
                vault_id=vault_id,
                management_fee_bps=fee_bps,
                now_ts=self.clock(),
            )
            tx.save_basket(basket)

        logger.info("create_basket basket=%s admin=%s fee_bps=%d", basket.basket_id, admin, fee_bps)
        return basket

    # -------------------------------------------------------------------------
    # Issuance / Redemption
    # -------------------------------------------------------------------------

    def deposit(
        self,
        basket_id: str,
        holder: str,
        base_in: int,
        min_shares_out: int,
        signers: Optional[Iterable[str]] = None,
    ) -> IssueDecision:
        """Депозит базового asset, выпуск shares holder."""
        with self._operation("deposit", basket_id, holder, signers) as tx:
            basket = tx.load_basket(basket_id)
            if self.config.require_kyc:
                record = tx.load_kyc_record(basket_id, holder)
                if record is None or not record.allowed:
                    raise ComplianceRejected(f"holder {holder} is not KYC-approved")

            decision = accounting.issue_shares(
                basket,
                tx.load_position(basket_id, holder),
                holder,
                base_in,
                min_shares_out,
                now_ts=self.clock(),
                fee_accrual=self.fee_accrual,
            )
            self._execute(tx, decision.movements)
            tx.save_basket(decision.basket)
            tx.save_position(decision.position)

        logger.info(
            "deposit basket=%s holder=%s base_in=%d shares_out=%d",
            basket_id, holder, base_in, decision.shares_out,
        )
        return decision

    def redeem(
        self,
        basket_id: str,
        holder: str,
        shares_in: int,
        min_base_out: int,
        signers: Optional[Iterable[str]] = None,
    ) -> RedeemDecision:
        """Погашение shares holder за базовый asset."""
        with self._operation("redeem", basket_id, holder, signers) as tx:
            basket = tx.load_basket(basket_id)
            decision = accounting.redeem_shares(
                basket,
                tx.load_position(basket_id, holder),
                holder,
                tx.balance_of(basket.share_asset_id, holder),
                shares_in,
                min_base_out,
                now_ts=self.clock(),
                fee_accrual=self.fee_accrual,
            )
            self._execute(tx, decision.movements)
            tx.save_basket(decision.basket)
            tx.save_position(decision.position)

        logger.info(
            "redeem basket=%s holder=%s shares_in=%d base_out=%d dividends=%d",
            basket_id, holder, shares_in, decision.base_out, decision.dividends_paid,
        )
        return decision

    # -------------------------------------------------------------------------
    # Dividends
    # -------------------------------------------------------------------------

    def deposit_dividends(
        self,
        basket_id: str,
        depositor: str,
        amount: int,
        signers: Optional[Iterable[str]] = None,
    ) -> DividendDecision:
        """Внести дивиденды в vault и обновить accumulator."""
        with self._operation("deposit_dividends", basket_id, depositor, signers) as tx:
            basket = tx.load_basket(basket_id)
            decision = accounting.deposit_dividends(
                basket,
                depositor,
                amount,
                tx.current_total_share_supply(basket),
                config=self.config,
            )
            self._execute(tx, decision.movements)
            tx.save_basket(decision.basket)

        logger.info(
            "deposit_dividends basket=%s amount=%d acc_increment=%d",
            basket_id, amount, decision.acc_increment,
        )
        return decision

    def claim_dividends(
        self,
        basket_id: str,
        holder: str,
        signers: Optional[Iterable[str]] = None,
    ) -> ClaimDecision:
        """Выплатить pending дивиденды holder.

        Position создаётся только deposit'ом: claim без position
        отклоняется с RecordNotFound и ничего не записывает.
        """
        with self._operation("claim_dividends", basket_id, holder, signers) as tx:
            basket = tx.load_basket(basket_id)
            position = tx.load_position(basket_id, holder)
            if position is None:
                raise RecordNotFound(f"holder {holder} has no position in basket {basket_id}")
            decision = accounting.claim_dividends(
                basket, position, tx.balance_of(basket.share_asset_id, holder)
            )
            self._execute(tx, decision.movements)
            tx.save_position(decision.position)

        logger.info(
            "claim_dividends basket=%s holder=%s pending=%d", basket_id, holder, decision.pending
        )
        return decision

    def pending_dividends(self, basket_id: str, holder: str) -> int:
        """Read-only: сколько holder может получить сейчас."""
        with self.ledger.transaction(signers=(), lock_key=basket_id) as tx:
            basket = tx.load_basket(basket_id)
            position = tx.load_position(basket_id, holder) or Position.open(basket_id, holder)
            return accounting.pending_dividends(
                position,
                basket.acc_dividend_per_share,
                tx.balance_of(basket.share_asset_id, holder),
            )

    # -------------------------------------------------------------------------
    # Admin / Oracle
    # -------------------------------------------------------------------------

    def _set_nav(
        self,
        basket_id: str,
        caller: str,
        nav_per_share: int,
        source: NavSource,
        signers: Optional[Iterable[str]],
    ) -> Basket:
        name = "oracle_set_nav" if source == NavSource.ORACLE else "set_nav"
        with self._operation(name, basket_id, caller, signers) as tx:
            basket = accounting.set_nav(
                tx.load_basket(basket_id),
                caller,
                nav_per_share,
                source=source,
                policy=self.config.nav_pause_policy,
            )
            tx.save_basket(basket)

        logger.info("%s basket=%s nav_per_share=%d", name, basket_id, nav_per_share)
        return basket

    def set_nav(
        self,
        basket_id: str,
        caller: str,
        nav_per_share: int,
        signers: Optional[Iterable[str]] = None,
    ) -> Basket:
        """Admin path установки NAV (Q64.64)."""
        return self._set_nav(basket_id, caller, nav_per_share, NavSource.ADMIN, signers)

    def oracle_set_nav(
        self,
        basket_id: str,
        caller: str,
        nav_per_share: int,
        signers: Optional[Iterable[str]] = None,
    ) -> Basket:
        """Oracle adapter path установки NAV (Q64.64)."""
        return self._set_nav(basket_id, caller, nav_per_share, NavSource.ORACLE, signers)

    def set_pause(
        self,
        basket_id: str,
        caller: str,
        paused: bool,
        signers: Optional[Iterable[str]] = None,
    ) -> Basket:
        with self._operation("set_pause", basket_id, caller, signers) as tx:
            basket = accounting.set_pause(tx.load_basket(basket_id), caller, paused)
            tx.save_basket(basket)

        logger.info("set_pause basket=%s paused=%s", basket_id, paused)
        return basket

    def set_kyc(
        self,
        basket_id: str,
        caller: str,
        user: str,
        allowed: bool,
        signers: Optional[Iterable[str]] = None,
    ) -> KycRecord:
        with self._operation("set_kyc", basket_id, caller, signers) as tx:
            record = accounting.set_kyc(tx.load_basket(basket_id), caller, user, allowed)
            tx.save_kyc_record(record)

        logger.info("set_kyc basket=%s user=%s allowed=%s", basket_id, user, allowed)
        return record
