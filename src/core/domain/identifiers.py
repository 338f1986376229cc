"""
Identifiers — Непрозрачные идентификаторы аккаунтов и assets

admin, asset ids и vault представлены как стабильные 32-байтные ключи
в hex-виде. Сравниваются по значению, никогда не по ссылке.
"""

import secrets
from typing import Annotated, Final

from pydantic import StringConstraints

ACCOUNT_ID_BYTES: Final[int] = 32

# 64 lowercase hex символа
ACCOUNT_ID_PATTERN: Final[str] = r"^[0-9a-f]{64}$"

AccountId = Annotated[
    str,
    StringConstraints(pattern=ACCOUNT_ID_PATTERN, strict=True),
]


def new_account_id() -> str:
    """Сгенерировать случайный AccountId (32 байта энтропии)"""
    return secrets.token_hex(ACCOUNT_ID_BYTES)


def account_id_from_bytes(raw: bytes) -> str:
    """
    AccountId из сырых 32 байт (например, публичного ключа host-платформы).

    Raises:
        ValueError: длина не равна 32 байтам
    """
    if len(raw) != ACCOUNT_ID_BYTES:
        raise ValueError(f"account id must be {ACCOUNT_ID_BYTES} bytes, got {len(raw)}")
    return raw.hex()
