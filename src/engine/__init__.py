"""Accounting Engine — чистые функции решений basket token.

- Issuance/redemption по NAV (Q64.64)
- Dividend accumulator и debt holder'ов
- Авторизация admin, пауза, slippage bounds
"""

from .accounting import (
    claim_dividends,
    create_basket,
    deposit_dividends,
    issue_shares,
    pending_dividends,
    redeem_shares,
    set_kyc,
    set_nav,
    set_pause,
)
from .config import DEFAULT_MANAGEMENT_FEE_BPS, EngineConfig, NavPausePolicy, NavSource
from .decisions import (
    AssetMovement,
    ClaimDecision,
    DividendDecision,
    IssueDecision,
    MovementKind,
    RedeemDecision,
)
from .fees import FeeAccrual, NoOpFeeAccrual

__all__ = [
    # Operations
    "create_basket",
    "issue_shares",
    "redeem_shares",
    "deposit_dividends",
    "pending_dividends",
    "claim_dividends",
    "set_nav",
    "set_pause",
    "set_kyc",
    # Config
    "DEFAULT_MANAGEMENT_FEE_BPS",
    "EngineConfig",
    "NavPausePolicy",
    "NavSource",
    # Decisions
    "AssetMovement",
    "MovementKind",
    "IssueDecision",
    "RedeemDecision",
    "DividendDecision",
    "ClaimDecision",
    # Fees
    "FeeAccrual",
    "NoOpFeeAccrual",
]
