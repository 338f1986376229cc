"""
Domain models and value objects.

Contains the persisted records of the basket token: Basket, Position, KycRecord.
"""

from src.core.domain.basket import MAX_FEE_BPS, Basket
from src.core.domain.compliance import KycRecord
from src.core.domain.identifiers import (
    ACCOUNT_ID_BYTES,
    AccountId,
    account_id_from_bytes,
    new_account_id,
)
from src.core.domain.position import Position

__all__ = [
    # Identifiers
    "ACCOUNT_ID_BYTES",
    "AccountId",
    "account_id_from_bytes",
    "new_account_id",
    # Records
    "Basket",
    "MAX_FEE_BPS",
    "Position",
    "KycRecord",
]
