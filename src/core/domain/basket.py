"""
Basket — Модель состояния basket token

Immutable Pydantic модель одного развёрнутого basket.
Соответствует контракту src/core/contracts/schema/basket.json.

Единственный мутатор nav_per_share, acc_dividend_per_share — accounting
engine; любое изменение создаёт новый экземпляр через model_copy.
"""

from pydantic import BaseModel, Field

from src.core.domain.identifiers import AccountId
from src.core.math.fixed_point import U128_MAX

# Максимум management fee: 100%
MAX_FEE_BPS = 10_000


class Basket(BaseModel):
    """
    Состояние basket.

    nav_per_share == 0 — sentinel "oracle ещё не установлен":
    все ценовые операции обязаны отклоняться (StaleOracle).
    """

    # Идентичность
    admin: AccountId = Field(..., description="Admin, единственный для привилегированных операций")
    base_asset_id: AccountId = Field(..., description="Базовый asset (депозиты/выплаты)")
    share_asset_id: AccountId = Field(..., description="Asset shares basket")
    vault_id: AccountId = Field(..., description="Pooled-custody аккаунт с базовым asset")

    # Fees (пока inert)
    management_fee_bps: int = Field(
        ..., ge=0, le=MAX_FEE_BPS, description="Management fee в bps (зарезервировано)"
    )
    last_fee_timestamp: int = Field(
        ..., ge=0, description="Последний момент fee accrual (unix, секунды)"
    )

    # Q64.64 состояние
    nav_per_share: int = Field(
        0, ge=0, le=U128_MAX, description="NAV одной share в единицах базового asset (Q64.64)"
    )
    acc_dividend_per_share: int = Field(
        0, ge=0, le=U128_MAX, description="Кумулятивные дивиденды на share (Q64.64)"
    )

    paused: bool = Field(False, description="Issuance/redemption запрещены")

    model_config = {"frozen": True}

    @property
    def basket_id(self) -> str:
        """Ключ basket: один basket на share asset"""
        return self.share_asset_id

    @property
    def is_nav_set(self) -> bool:
        return self.nav_per_share > 0
