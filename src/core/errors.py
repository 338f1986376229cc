"""
Basket Errors — Таксономия отказов accounting core

Каждый отклонённый precondition поднимает отдельный класс исключения
со стабильным ErrorKind. Все ошибки синхронные и терминальные для текущей
операции: engine не мутирует состояние до того, как все проверки пройдены.
"""

from enum import Enum


# =============================================================================
# ERROR KINDS
# =============================================================================


class ErrorKind(str, Enum):
    """Стабильный код ошибки для host/caller"""

    PAUSED = "Paused"
    STALE_ORACLE = "StaleOracle"
    SLIPPAGE_EXCEEDED = "SlippageExceeded"
    NO_SUPPLY = "NoSupply"
    UNAUTHORIZED = "Unauthorized"
    ARITHMETIC_OVERFLOW = "ArithmeticOverflow"
    DIVISION_BY_ZERO = "DivisionByZero"
    INSUFFICIENT_SHARES = "InsufficientShares"
    COMPLIANCE_REJECTED = "ComplianceRejected"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class BasketError(Exception):
    """
    Базовое исключение accounting core.

    Атрибут kind позволяет host-слою маппить ошибку на код ответа
    без isinstance-цепочек.
    """

    kind: ErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)


class Paused(BasketError):
    """Операция отклонена: basket на паузе"""

    kind = ErrorKind.PAUSED


class StaleOracle(BasketError):
    """NAV ещё не установлен (nav_per_share == 0)"""

    kind = ErrorKind.STALE_ORACLE


class SlippageExceeded(BasketError):
    """Рассчитанный выход хуже минимума, заданного caller"""

    kind = ErrorKind.SLIPPAGE_EXCEEDED


class NoSupply(BasketError):
    """Dividend deposit при нулевом supply shares"""

    kind = ErrorKind.NO_SUPPLY


class Unauthorized(BasketError):
    """Caller не является admin basket"""

    kind = ErrorKind.UNAUTHORIZED


class ArithmeticOverflow(BasketError):
    """
    Результат fixed-point операции не помещается в целевую разрядность.

    Поднимается вместо молчаливого wrap-around (u64/u128).
    """

    kind = ErrorKind.ARITHMETIC_OVERFLOW


class DivisionByZero(BasketError):
    """Делитель fixed-point деления равен нулю"""

    kind = ErrorKind.DIVISION_BY_ZERO


class InsufficientShares(BasketError):
    """Redeem больше shares, чем есть у holder"""

    kind = ErrorKind.INSUFFICIENT_SHARES


class ComplianceRejected(BasketError):
    """Holder не прошёл KYC gate"""

    kind = ErrorKind.COMPLIANCE_REJECTED
