"""
Contract Validation Module

Валидация persisted records (Basket, Position, KycRecord) против
JSON Schema контрактов из package data.
"""

from .validators import (
    RECORD_SCHEMAS,
    SCHEMA_DIR,
    iter_violations,
    load_schema,
    schema_name_for,
    validate_payload,
    validate_record,
    validator_for,
)

__all__ = [
    "RECORD_SCHEMAS",
    "SCHEMA_DIR",
    "load_schema",
    "validator_for",
    "schema_name_for",
    "validate_record",
    "validate_payload",
    "iter_violations",
]
