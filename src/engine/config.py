"""Engine Config — конфигурация политик accounting engine.

Открытые политики оформлены как явные конфигурационные флаги:
- пауза и обновление NAV (admin path vs oracle path)
- кто может вносить дивиденды
- KYC gate на deposit
"""

from dataclasses import dataclass, field
from enum import Enum

# Management fee по умолчанию при создании basket (bps)
DEFAULT_MANAGEMENT_FEE_BPS = 50


class NavSource(str, Enum):
    """Путь, по которому пришло обновление NAV."""
    ADMIN = "ADMIN"
    ORACLE = "ORACLE"


@dataclass(frozen=True)
class NavPausePolicy:
    """Отклонять ли set_nav, пока basket на паузе.

    Admin path по умолчанию уважает паузу, oracle adapter — нет
    (oracle может публиковать цену во время паузы, чтобы разморозка
    не происходила на устаревшем NAV).
    """
    admin_respects_pause: bool = True
    oracle_respects_pause: bool = False

    def respects_pause(self, source: NavSource) -> bool:
        if source == NavSource.ORACLE:
            return self.oracle_respects_pause
        return self.admin_respects_pause


@dataclass(frozen=True)
class EngineConfig:
    """Конфигурация engine и dispatch-слоя.

    Attributes:
        nav_pause_policy: политика set_nav во время паузы
        dividends_admin_only: deposit_dividends только от admin
        require_kyc: deposit только для пользователей с KycRecord.allowed
        default_management_fee_bps: fee при создании basket (inert)
    """
    nav_pause_policy: NavPausePolicy = field(default_factory=NavPausePolicy)
    dividends_admin_only: bool = True
    require_kyc: bool = False
    default_management_fee_bps: int = DEFAULT_MANAGEMENT_FEE_BPS
