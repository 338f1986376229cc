"""
Compliance — KYC запись holder

Запись выставляется admin basket. Используется dispatch-слоем как
опциональный gate на deposit (EngineConfig.require_kyc).
"""

from pydantic import BaseModel, Field

from src.core.domain.identifiers import AccountId


class KycRecord(BaseModel):
    """KYC статус пользователя в рамках одного basket"""

    admin: AccountId = Field(..., description="Admin, выставивший статус")
    user: AccountId = Field(..., description="Пользователь")
    basket: AccountId = Field(..., description="Ключ basket")
    allowed: bool = Field(..., description="Пользователь допущен к deposit")

    model_config = {"frozen": True}
