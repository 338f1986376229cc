"""Accounting Engine — чистые функции решений basket token.

Покрывает:
- Issuance shares по NAV (deposit базового asset)
- Redemption shares по NAV с settlement pending дивидендов
- Dividend accumulator (acc_dividend_per_share) и debt holder'ов
- Авторизацию admin, паузу, slippage bounds

Каждая функция сначала проверяет все preconditions и считает результат
целиком, и только затем возвращает новые records. Входные records
frozen и никогда не мутируются: отказ на любом шаге не оставляет
частичных изменений.

Dividend accumulator:
    pending = shares_held * acc_dividend_per_share - dividend_debt
Debt пересчитывается при каждом изменении количества shares, поэтому
новые shares не получают дивиденды, начисленные до их выпуска.
"""

from typing import Optional

from src.core.domain.basket import Basket
from src.core.domain.compliance import KycRecord
from src.core.domain.position import Position
from src.core.errors import (
    InsufficientShares,
    NoSupply,
    Paused,
    SlippageExceeded,
    StaleOracle,
    Unauthorized,
)
from src.core.math.fixed_point import (
    descale,
    fixed_divide,
    fixed_multiply,
    saturating_add,
    saturating_mul,
    saturating_sub,
    to_native_amount,
    to_q64,
)
from src.engine.config import (
    DEFAULT_MANAGEMENT_FEE_BPS,
    EngineConfig,
    NavPausePolicy,
    NavSource,
)
from src.engine.decisions import (
    AssetMovement,
    ClaimDecision,
    DividendDecision,
    IssueDecision,
    MovementKind,
    RedeemDecision,
)
from src.engine.fees import FeeAccrual, NoOpFeeAccrual


# =============================================================================
# PRECONDITIONS
# =============================================================================


def _require_admin(basket: Basket, caller: str) -> None:
    if caller != basket.admin:
        raise Unauthorized(f"caller {caller} is not the basket admin")


def _require_active(basket: Basket) -> None:
    if basket.paused:
        raise Paused(f"basket {basket.basket_id} is paused")


def _require_nav(basket: Basket) -> None:
    # nav_per_share == 0: sentinel "oracle не установлен"
    if not basket.is_nav_set:
        raise StaleOracle(f"NAV is not set for basket {basket.basket_id}")


def _position_for(basket: Basket, position: Optional[Position], holder: str) -> Position:
    if position is None:
        return Position.open(basket=basket.basket_id, owner=holder)
    if position.owner != holder or position.basket != basket.basket_id:
        raise ValueError(
            f"position ({position.basket}, {position.owner}) does not belong to "
            f"({basket.basket_id}, {holder})"
        )
    return position


# =============================================================================
# BASKET LIFECYCLE
# =============================================================================


def create_basket(
    admin: str,
    base_asset_id: str,
    share_asset_id: str,
    vault_id: str,
    management_fee_bps: int = DEFAULT_MANAGEMENT_FEE_BPS,
    now_ts: int = 0,
) -> Basket:
    """
    Новый basket: NAV не установлен, accumulator 0, не на паузе.

    Admin фиксируется здесь и больше не меняется.
    """
    return Basket(
        admin=admin,
        base_asset_id=base_asset_id,
        share_asset_id=share_asset_id,
        vault_id=vault_id,
        management_fee_bps=management_fee_bps,
        last_fee_timestamp=now_ts,
        nav_per_share=0,
        acc_dividend_per_share=0,
        paused=False,
    )


# =============================================================================
# ISSUANCE / REDEMPTION
# =============================================================================


def issue_shares(
    basket: Basket,
    position: Optional[Position],
    holder: str,
    base_in: int,
    min_shares_out: int,
    *,
    now_ts: int = 0,
    fee_accrual: Optional[FeeAccrual] = None,
) -> IssueDecision:
    """
    Выпуск shares за депозит базового asset.

    shares_out = floor((base_in << 64) / nav_per_share)

    Args:
        basket: текущий basket
        position: позиция holder (None — создаётся лениво)
        holder: получатель shares и плательщик base_in
        base_in: депозит в нативных единицах базового asset
        min_shares_out: slippage bound
        now_ts: текущее время для fee accrual
        fee_accrual: hook начисления fee (default: no-op)

    Returns:
        IssueDecision: shares_out, обновлённые basket/position, движения
        (base holder → vault, mint shares holder)

    Raises:
        Paused, StaleOracle, SlippageExceeded, ArithmeticOverflow
    """
    _require_active(basket)
    to_native_amount(base_in, "base_in")
    to_native_amount(min_shares_out, "min_shares_out")

    basket = (fee_accrual or NoOpFeeAccrual()).accrue(basket, now_ts)
    _require_nav(basket)

    shares_out = to_native_amount(fixed_divide(base_in, basket.nav_per_share), "shares_out")
    if shares_out < min_shares_out:
        raise SlippageExceeded(f"shares_out {shares_out} < min_shares_out {min_shares_out}")

    position = _position_for(basket, position, holder)

    # Новые shares не должны претендовать на ранее начисленные дивиденды
    new_debt = saturating_add(
        position.dividend_debt,
        saturating_mul(shares_out, basket.acc_dividend_per_share),
    )

    movements = (
        AssetMovement(
            kind=MovementKind.TRANSFER_BASE,
            asset_id=basket.base_asset_id,
            amount=base_in,
            source=holder,
            destination=basket.vault_id,
        ),
        AssetMovement(
            kind=MovementKind.MINT_SHARES,
            asset_id=basket.share_asset_id,
            amount=shares_out,
            destination=holder,
        ),
    )

    return IssueDecision(
        shares_out=shares_out,
        basket=basket,
        position=position.model_copy(update={"dividend_debt": new_debt}),
        movements=movements,
    )


def redeem_shares(
    basket: Basket,
    position: Optional[Position],
    holder: str,
    shares_held: int,
    shares_in: int,
    min_base_out: int,
    *,
    now_ts: int = 0,
    fee_accrual: Optional[FeeAccrual] = None,
) -> RedeemDecision:
    """
    Погашение shares за базовый asset.

    base_out = (shares_in * nav_per_share) >> 64

    Перед уменьшением количества shares pending дивиденды holder
    выплачиваются, а debt пересинхронизируется на оставшиеся shares.
    Иначе уменьшение shares_held стёрло бы уже начисленный доход.

    Args:
        shares_held: баланс shares holder до погашения
        shares_in: сколько shares погасить
        min_base_out: slippage bound

    Raises:
        Paused, StaleOracle, InsufficientShares, SlippageExceeded,
        ArithmeticOverflow
    """
    _require_active(basket)
    to_native_amount(shares_held, "shares_held")
    to_native_amount(shares_in, "shares_in")
    to_native_amount(min_base_out, "min_base_out")

    basket = (fee_accrual or NoOpFeeAccrual()).accrue(basket, now_ts)
    _require_nav(basket)

    if shares_in > shares_held:
        raise InsufficientShares(f"shares_in {shares_in} > shares_held {shares_held}")

    base_out = to_native_amount(fixed_multiply(shares_in, basket.nav_per_share), "base_out")
    if base_out < min_base_out:
        raise SlippageExceeded(f"base_out {base_out} < min_base_out {min_base_out}")

    position = _position_for(basket, position, holder)
    acc = basket.acc_dividend_per_share
    dividends = pending_dividends(position, acc, shares_held)
    new_debt = saturating_mul(shares_held - shares_in, acc)

    movements = [
        AssetMovement(
            kind=MovementKind.BURN_SHARES,
            asset_id=basket.share_asset_id,
            amount=shares_in,
            source=holder,
        ),
        AssetMovement(
            kind=MovementKind.TRANSFER_BASE,
            asset_id=basket.base_asset_id,
            amount=base_out,
            source=basket.vault_id,
            destination=holder,
        ),
    ]
    if dividends > 0:
        movements.append(
            AssetMovement(
                kind=MovementKind.TRANSFER_BASE,
                asset_id=basket.base_asset_id,
                amount=dividends,
                source=basket.vault_id,
                destination=holder,
            )
        )

    return RedeemDecision(
        base_out=base_out,
        dividends_paid=dividends,
        basket=basket,
        position=position.model_copy(update={"dividend_debt": new_debt}),
        movements=tuple(movements),
    )


# =============================================================================
# DIVIDENDS
# =============================================================================


def deposit_dividends(
    basket: Basket,
    depositor: str,
    amount: int,
    total_share_supply: int,
    *,
    config: Optional[EngineConfig] = None,
) -> DividendDecision:
    """
    Распределение дивидендов pro rata через accumulator.

    acc_dividend_per_share += (amount << 64) / total_share_supply

    Accumulator насыщается на U128_MAX и никогда не уменьшается.

    Raises:
        Unauthorized: depositor не admin (при dividends_admin_only)
        NoSupply: total_share_supply == 0
    """
    config = config or EngineConfig()
    if config.dividends_admin_only:
        _require_admin(basket, depositor)

    to_native_amount(amount, "amount")
    to_native_amount(total_share_supply, "total_share_supply")
    if total_share_supply == 0:
        raise NoSupply(f"basket {basket.basket_id} has no circulating shares")

    increment = fixed_divide(amount, total_share_supply)
    new_acc = saturating_add(basket.acc_dividend_per_share, increment)

    movement = AssetMovement(
        kind=MovementKind.TRANSFER_BASE,
        asset_id=basket.base_asset_id,
        amount=amount,
        source=depositor,
        destination=basket.vault_id,
    )

    return DividendDecision(
        amount=amount,
        acc_increment=increment,
        basket=basket.model_copy(update={"acc_dividend_per_share": new_acc}),
        movements=(movement,),
    )


def pending_dividends(position: Position, acc_dividend_per_share: int, shares_held: int) -> int:
    """
    Начисленные, но не выплаченные дивиденды holder.

    pending = (shares_held * acc - dividend_debt) >> 64, с saturating
    вычитанием: усечение никогда не даёт отрицательного результата.
    """
    to_native_amount(shares_held, "shares_held")
    to_q64(acc_dividend_per_share, "acc_dividend_per_share")

    accrued = saturating_mul(shares_held, acc_dividend_per_share)
    return descale(saturating_sub(accrued, position.dividend_debt))


def claim_dividends(basket: Basket, position: Position, shares_held: int) -> ClaimDecision:
    """
    Выплата pending дивидендов holder.

    Debt полностью пересинхронизируется на shares_held * acc даже при
    pending == 0: устаревший baseline не остаётся.
    """
    if position.basket != basket.basket_id:
        raise ValueError(f"position belongs to basket {position.basket}, not {basket.basket_id}")

    acc = basket.acc_dividend_per_share
    pending = pending_dividends(position, acc, shares_held)
    new_debt = saturating_mul(shares_held, acc)

    movements = ()
    if pending > 0:
        movements = (
            AssetMovement(
                kind=MovementKind.TRANSFER_BASE,
                asset_id=basket.base_asset_id,
                amount=pending,
                source=basket.vault_id,
                destination=position.owner,
            ),
        )

    return ClaimDecision(
        pending=pending,
        position=position.model_copy(update={"dividend_debt": new_debt}),
        movements=movements,
    )


# =============================================================================
# ADMIN OPERATIONS
# =============================================================================


def set_nav(
    basket: Basket,
    caller: str,
    new_nav: int,
    *,
    source: NavSource = NavSource.ADMIN,
    policy: Optional[NavPausePolicy] = None,
) -> Basket:
    """
    Установка NAV per share (Q64.64).

    Границы и направление изменения цены не проверяются: NAV —
    внешний вход, его корректность — ответственность источника.

    Raises:
        Unauthorized: caller не admin
        Paused: basket на паузе и policy требует уважать паузу для source
        ArithmeticOverflow: new_nav не помещается в u128
    """
    policy = policy or NavPausePolicy()
    _require_admin(basket, caller)
    if basket.paused and policy.respects_pause(source):
        raise Paused(f"basket {basket.basket_id} is paused ({source.value} NAV update)")
    to_q64(new_nav, "new_nav")
    return basket.model_copy(update={"nav_per_share": new_nav})


def set_pause(basket: Basket, caller: str, paused: bool) -> Basket:
    """Переключение паузы. Других эффектов нет."""
    _require_admin(basket, caller)
    return basket.model_copy(update={"paused": paused})


def set_kyc(basket: Basket, caller: str, user: str, allowed: bool) -> KycRecord:
    """KYC статус пользователя для basket (только admin)."""
    _require_admin(basket, caller)
    return KycRecord(admin=caller, user=user, basket=basket.basket_id, allowed=allowed)
