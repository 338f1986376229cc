"""Decisions — результаты accounting engine.

Engine не двигает assets сам: он возвращает решение — обновлённые
records и список AssetMovement, которые host обязан выполнить атомарно
вместе с сохранением records.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from src.core.domain.basket import Basket
from src.core.domain.position import Position


class MovementKind(str, Enum):
    """Тип движения asset, исполняемого host."""
    TRANSFER_BASE = "TRANSFER_BASE"
    MINT_SHARES = "MINT_SHARES"
    BURN_SHARES = "BURN_SHARES"


@dataclass(frozen=True)
class AssetMovement:
    """Одно движение asset.

    source — None для mint, destination — None для burn.
    """
    kind: MovementKind
    asset_id: str
    amount: int
    source: Optional[str] = None
    destination: Optional[str] = None


@dataclass(frozen=True)
class IssueDecision:
    """Результат issue_shares."""

    shares_out: int
    basket: Basket
    position: Position
    movements: Tuple[AssetMovement, ...]


@dataclass(frozen=True)
class RedeemDecision:
    """Результат redeem_shares.

    dividends_paid — pending дивиденды, выплаченные при settlement
    перед уменьшением количества shares.
    """

    base_out: int
    dividends_paid: int
    basket: Basket
    position: Position
    movements: Tuple[AssetMovement, ...]


@dataclass(frozen=True)
class DividendDecision:
    """Результат deposit_dividends."""

    amount: int
    acc_increment: int
    basket: Basket
    movements: Tuple[AssetMovement, ...]


@dataclass(frozen=True)
class ClaimDecision:
    """Результат claim_dividends."""

    pending: int
    position: Position
    movements: Tuple[AssetMovement, ...]
