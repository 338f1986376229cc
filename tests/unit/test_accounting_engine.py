"""
Тесты для Accounting Engine: issuance, redemption, admin операции

Проверяет:
1. Конверсию NAV <-> shares и направление усечения
2. Pause gating и StaleOracle sentinel
3. Slippage bounds на точной границе
4. Round-trip conservation в пределах ошибки усечения
5. Авторизацию admin и политику паузы для set_nav
6. Fee accrual hook
"""

from decimal import Decimal

import pytest

from src.core.domain import Basket, Position
from src.core.errors import (
    ArithmeticOverflow,
    ErrorKind,
    InsufficientShares,
    Paused,
    SlippageExceeded,
    StaleOracle,
    Unauthorized,
)
from src.core.math import Q64_ONE, U64_MAX, U128_MAX, q64_from_decimal, q64_to_decimal
from src.engine import (
    MovementKind,
    NavPausePolicy,
    NavSource,
    create_basket,
    issue_shares,
    pending_dividends,
    redeem_shares,
    set_kyc,
    set_nav,
    set_pause,
)

ADMIN = "a" * 64
HOLDER = "b" * 64
STRANGER = "c" * 64
BASE = "d" * 64
SHARE = "e" * 64
VAULT = "f" * 64


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fresh_basket() -> Basket:
    """Basket без NAV."""
    return create_basket(ADMIN, BASE, SHARE, VAULT, now_ts=1700000000)


@pytest.fixture
def basket(fresh_basket: Basket) -> Basket:
    """Basket с NAV = 1.0."""
    return set_nav(fresh_basket, ADMIN, Q64_ONE)


def _with(basket: Basket, **update) -> Basket:
    return basket.model_copy(update=update)


# =============================================================================
# CREATE
# =============================================================================


class TestCreateBasket:
    """Тесты для create_basket"""

    def test_initial_state(self, fresh_basket: Basket) -> None:
        assert fresh_basket.admin == ADMIN
        assert fresh_basket.basket_id == SHARE
        assert fresh_basket.nav_per_share == 0
        assert fresh_basket.acc_dividend_per_share == 0
        assert fresh_basket.paused is False
        assert fresh_basket.management_fee_bps == 50
        assert fresh_basket.last_fee_timestamp == 1700000000

    def test_custom_fee(self) -> None:
        basket = create_basket(ADMIN, BASE, SHARE, VAULT, management_fee_bps=0)
        assert basket.management_fee_bps == 0


# =============================================================================
# ISSUANCE
# =============================================================================


class TestIssueShares:
    """Тесты для issue_shares"""

    def test_issue_at_par(self, basket: Basket) -> None:
        """NAV 1.0: 1000 base -> 1000 shares"""
        decision = issue_shares(basket, None, HOLDER, 1000, 1000)

        assert decision.shares_out == 1000
        assert decision.position.owner == HOLDER
        assert decision.position.basket == SHARE
        assert decision.position.dividend_debt == 0

    def test_issue_at_nav_two(self, basket: Basket) -> None:
        decision = issue_shares(_with(basket, nav_per_share=2 * Q64_ONE), None, HOLDER, 1000, 0)
        assert decision.shares_out == 500

    def test_movements(self, basket: Basket) -> None:
        """Base holder -> vault, затем mint shares holder"""
        transfer, mint = issue_shares(basket, None, HOLDER, 1000, 0).movements

        assert transfer.kind == MovementKind.TRANSFER_BASE
        assert transfer.asset_id == BASE
        assert (transfer.source, transfer.destination, transfer.amount) == (HOLDER, VAULT, 1000)

        assert mint.kind == MovementKind.MINT_SHARES
        assert mint.asset_id == SHARE
        assert (mint.destination, mint.amount) == (HOLDER, 1000)

    def test_stale_oracle(self, fresh_basket: Basket) -> None:
        """NAV == 0 -> StaleOracle, не деление на ноль"""
        with pytest.raises(StaleOracle):
            issue_shares(fresh_basket, None, HOLDER, 1000, 0)

    def test_paused_regardless_of_inputs(self, fresh_basket: Basket) -> None:
        """Пауза проверяется первой: NAV не установлен, bound невыполним"""
        paused = _with(fresh_basket, paused=True)
        with pytest.raises(Paused):
            issue_shares(paused, None, HOLDER, 1000, U64_MAX)
        with pytest.raises(Paused):
            issue_shares(_with(paused, nav_per_share=Q64_ONE), None, HOLDER, 0, 0)

    def test_slippage_exact_boundary(self, basket: Basket) -> None:
        """NAV 3.0: 1000 -> 333 shares; min 334 отклоняется, min 333 проходит"""
        priced = _with(basket, nav_per_share=3 * Q64_ONE)

        with pytest.raises(SlippageExceeded):
            issue_shares(priced, None, HOLDER, 1000, 334)
        assert issue_shares(priced, None, HOLDER, 1000, 333).shares_out == 333

    def test_no_double_claim_after_issue(self, basket: Basket) -> None:
        """Новые shares не претендуют на ранее начисленные дивиденды"""
        acc = 5 * Q64_ONE + 12345
        decision = issue_shares(_with(basket, acc_dividend_per_share=acc), None, HOLDER, 1000, 0)

        assert decision.position.dividend_debt == 1000 * acc
        assert pending_dividends(decision.position, acc, decision.shares_out) == 0

    def test_issue_preserves_existing_pending(self, basket: Basket) -> None:
        """Доп. issuance не съедает уже начисленный pending"""
        acc = Q64_ONE
        position = Position(owner=HOLDER, basket=SHARE, dividend_debt=0)
        assert pending_dividends(position, acc, 100) == 100

        decision = issue_shares(_with(basket, acc_dividend_per_share=acc), position, HOLDER, 50, 0)

        assert pending_dividends(decision.position, acc, 150) == 100

    def test_input_not_mutated(self, basket: Basket) -> None:
        position = Position.open(SHARE, HOLDER)
        issue_shares(_with(basket, acc_dividend_per_share=Q64_ONE), position, HOLDER, 10, 0)
        assert position.dividend_debt == 0

    def test_base_in_above_u64_rejected(self, basket: Basket) -> None:
        with pytest.raises(ArithmeticOverflow):
            issue_shares(basket, None, HOLDER, U64_MAX + 1, 0)

    def test_shares_out_above_u64_rejected(self, basket: Basket) -> None:
        """Крошечный NAV -> shares_out не помещается в u64"""
        with pytest.raises(ArithmeticOverflow, match="shares_out"):
            issue_shares(_with(basket, nav_per_share=1), None, HOLDER, U64_MAX, 0)

    def test_foreign_position_rejected(self, basket: Basket) -> None:
        with pytest.raises(ValueError, match="does not belong"):
            issue_shares(basket, Position.open(SHARE, STRANGER), HOLDER, 10, 0)

    def test_fee_accrual_hook_applied(self, basket: Basket) -> None:
        """Hook вызывается до ценообразования, его basket попадает в решение"""

        class StampingAccrual:
            def accrue(self, basket: Basket, now_ts: int) -> Basket:
                return basket.model_copy(update={"last_fee_timestamp": now_ts})

        decision = issue_shares(
            basket, None, HOLDER, 10, 0, now_ts=1800000000, fee_accrual=StampingAccrual()
        )
        assert decision.basket.last_fee_timestamp == 1800000000

    def test_default_fee_accrual_is_noop(self, basket: Basket) -> None:
        decision = issue_shares(basket, None, HOLDER, 10, 0, now_ts=1800000000)
        assert decision.basket == basket


# =============================================================================
# REDEMPTION
# =============================================================================


class TestRedeemShares:
    """Тесты для redeem_shares"""

    def test_redeem_at_par(self, basket: Basket) -> None:
        decision = redeem_shares(basket, None, HOLDER, 1000, 400, 400)

        assert decision.base_out == 400
        assert decision.dividends_paid == 0
        burn, transfer = decision.movements
        assert burn.kind == MovementKind.BURN_SHARES
        assert (burn.asset_id, burn.source, burn.amount) == (SHARE, HOLDER, 400)
        assert transfer.kind == MovementKind.TRANSFER_BASE
        assert (transfer.source, transfer.destination, transfer.amount) == (VAULT, HOLDER, 400)

    def test_redeem_truncates(self, basket: Basket) -> None:
        """3 shares * 1.5 = 4.5 -> 4"""
        priced = _with(basket, nav_per_share=q64_from_decimal("1.5"))
        assert redeem_shares(priced, None, HOLDER, 3, 3, 0).base_out == 4

    def test_slippage(self, basket: Basket) -> None:
        with pytest.raises(SlippageExceeded):
            redeem_shares(basket, None, HOLDER, 1000, 400, 401)

    def test_insufficient_shares(self, basket: Basket) -> None:
        with pytest.raises(InsufficientShares):
            redeem_shares(basket, None, HOLDER, 10, 11, 0)

    def test_paused(self, basket: Basket) -> None:
        with pytest.raises(Paused):
            redeem_shares(_with(basket, paused=True), None, HOLDER, 10, 10, 0)

    def test_stale_oracle(self, fresh_basket: Basket) -> None:
        with pytest.raises(StaleOracle):
            redeem_shares(fresh_basket, None, HOLDER, 10, 10, 0)

    def test_base_out_above_u64_rejected(self, basket: Basket) -> None:
        priced = _with(basket, nav_per_share=U128_MAX)
        with pytest.raises(ArithmeticOverflow, match="base_out"):
            redeem_shares(priced, None, HOLDER, 2, 2, 0)

    def test_redeem_settles_pending_dividends(self, basket: Basket) -> None:
        """Pending выплачивается, debt пересинхронизируется на остаток"""
        acc = Q64_ONE
        position = Position(owner=HOLDER, basket=SHARE, dividend_debt=0)

        decision = redeem_shares(
            _with(basket, acc_dividend_per_share=acc), position, HOLDER, 100, 40, 0
        )

        assert decision.base_out == 40
        assert decision.dividends_paid == 100
        assert decision.position.dividend_debt == 60 * acc
        assert pending_dividends(decision.position, acc, 60) == 0

        dividend_transfer = decision.movements[-1]
        assert dividend_transfer.kind == MovementKind.TRANSFER_BASE
        assert (dividend_transfer.destination, dividend_transfer.amount) == (HOLDER, 100)

    @pytest.mark.parametrize("nav", ["1", "1.37", "0.003", "2.5", "9999.999"])
    @pytest.mark.parametrize("base_in", [1, 999, 1_000_000, 123_456_789_012])
    def test_round_trip_conservation(self, basket: Basket, nav: str, base_in: int) -> None:
        """issue -> redeem при неизменном NAV: base_out <= base_in, потеря < NAV + 1"""
        priced = _with(basket, nav_per_share=q64_from_decimal(nav))

        shares = issue_shares(priced, None, HOLDER, base_in, 0).shares_out
        base_out = redeem_shares(priced, None, HOLDER, shares, shares, 0).base_out

        assert base_out <= base_in
        assert base_in - base_out < q64_to_decimal(priced.nav_per_share) + 1


# =============================================================================
# ADMIN OPERATIONS
# =============================================================================


class TestSetNav:
    """Тесты для set_nav и политики паузы"""

    def test_admin_sets_nav(self, fresh_basket: Basket) -> None:
        updated = set_nav(fresh_basket, ADMIN, q64_from_decimal("1.05"))
        assert updated.nav_per_share == q64_from_decimal("1.05")
        assert fresh_basket.nav_per_share == 0

    def test_no_bounds_on_price_movement(self, basket: Basket) -> None:
        """Любой рост/падение принимается, включая возврат к sentinel"""
        assert set_nav(basket, ADMIN, 1000 * Q64_ONE).nav_per_share == 1000 * Q64_ONE
        assert set_nav(basket, ADMIN, 0).nav_per_share == 0

    def test_non_admin_unauthorized(self, basket: Basket) -> None:
        with pytest.raises(Unauthorized):
            set_nav(basket, STRANGER, 2 * Q64_ONE)
        assert basket.nav_per_share == Q64_ONE

    def test_unauthorized_checked_before_pause(self, basket: Basket) -> None:
        with pytest.raises(Unauthorized):
            set_nav(_with(basket, paused=True), STRANGER, 2 * Q64_ONE)

    def test_admin_path_rejected_while_paused(self, basket: Basket) -> None:
        with pytest.raises(Paused):
            set_nav(_with(basket, paused=True), ADMIN, 2 * Q64_ONE)

    def test_oracle_path_allowed_while_paused(self, basket: Basket) -> None:
        updated = set_nav(_with(basket, paused=True), ADMIN, 2 * Q64_ONE, source=NavSource.ORACLE)
        assert updated.nav_per_share == 2 * Q64_ONE

    def test_policy_can_relax_admin_path(self, basket: Basket) -> None:
        policy = NavPausePolicy(admin_respects_pause=False)
        updated = set_nav(_with(basket, paused=True), ADMIN, 2 * Q64_ONE, policy=policy)
        assert updated.nav_per_share == 2 * Q64_ONE

    def test_policy_can_enforce_oracle_path(self, basket: Basket) -> None:
        policy = NavPausePolicy(oracle_respects_pause=True)
        with pytest.raises(Paused):
            set_nav(
                _with(basket, paused=True),
                ADMIN,
                2 * Q64_ONE,
                source=NavSource.ORACLE,
                policy=policy,
            )

    def test_nav_above_u128_rejected(self, basket: Basket) -> None:
        with pytest.raises(ArithmeticOverflow):
            set_nav(basket, ADMIN, U128_MAX + 1)


class TestSetPause:
    """Тесты для set_pause"""

    def test_admin_toggles(self, basket: Basket) -> None:
        paused = set_pause(basket, ADMIN, True)
        assert paused.paused
        assert not set_pause(paused, ADMIN, False).paused

    def test_only_flag_changes(self, basket: Basket) -> None:
        paused = set_pause(basket, ADMIN, True)
        assert paused.model_dump(exclude={"paused"}) == basket.model_dump(exclude={"paused"})

    def test_non_admin_unauthorized(self, basket: Basket) -> None:
        with pytest.raises(Unauthorized) as exc_info:
            set_pause(basket, STRANGER, True)
        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
        assert basket.paused is False


class TestSetKyc:
    """Тесты для set_kyc"""

    def test_admin_sets_status(self, basket: Basket) -> None:
        record = set_kyc(basket, ADMIN, HOLDER, True)
        assert (record.admin, record.user, record.basket, record.allowed) == (
            ADMIN,
            HOLDER,
            SHARE,
            True,
        )

    def test_non_admin_unauthorized(self, basket: Basket) -> None:
        with pytest.raises(Unauthorized):
            set_kyc(basket, STRANGER, HOLDER, True)


class TestErrorKinds:
    """Каждый отказ имеет отдельный стабильный код"""

    def test_kinds_are_distinct(self) -> None:
        assert len({kind.value for kind in ErrorKind}) == len(ErrorKind)

    def test_default_message_is_kind(self) -> None:
        assert str(Paused()) == "Paused"
        assert str(StaleOracle()) == "StaleOracle"

    def test_decimal_nav_display(self) -> None:
        assert q64_to_decimal(q64_from_decimal("2.5")) == Decimal("2.5")
