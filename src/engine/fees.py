"""Fee Accrual — точка расширения для time-based management fee.

Engine вызывает hook перед ценовыми операциями (issuance/redemption).
Реализация по умолчанию — no-op: basket возвращается без изменений,
last_fee_timestamp не трогается.
"""

from typing import Protocol

from src.core.domain.basket import Basket


class FeeAccrual(Protocol):
    """Интерфейс начисления management fee."""

    def accrue(self, basket: Basket, now_ts: int) -> Basket:
        """Вернуть basket с начисленной fee на момент now_ts."""
        ...


class NoOpFeeAccrual:
    """Fee accrual отключён."""

    def accrue(self, basket: Basket, now_ts: int) -> Basket:
        return basket
