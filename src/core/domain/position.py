"""
Position — Позиция holder в basket

Immutable Pydantic модель, одна на пару (basket, holder).
Соответствует контракту src/core/contracts/schema/position.json.

Создаётся лениво при первом issuance, мутируется на каждом
deposit/redeem/claim, никогда не удаляется (история сохраняется даже
при нулевом балансе).
"""

from pydantic import BaseModel, Field

from src.core.domain.identifiers import AccountId
from src.core.math.fixed_point import U128_MAX


class Position(BaseModel):
    """
    Модель позиции holder.

    dividend_debt — Q64.64 величина shares_held * acc_dividend_per_share
    на момент последнего settlement. Количество shares хранит host
    (баланс share asset), не позиция.
    """

    owner: AccountId = Field(..., description="Holder")
    basket: AccountId = Field(..., description="Ключ basket (share_asset_id)")
    dividend_debt: int = Field(
        0, ge=0, le=U128_MAX, description="Baseline дивидендов на последнем settlement (Q64.64)"
    )

    model_config = {"frozen": True}

    @classmethod
    def open(cls, basket: str, owner: str) -> "Position":
        """Позиция по умолчанию для holder без истории"""
        return cls(owner=owner, basket=basket, dividend_debt=0)
