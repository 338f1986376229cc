"""
Record Contracts — JSON Schema контракты persisted records

Каждый record, который host сохраняет (Basket, Position, KycRecord),
сериализуется в JSON-совместимый dict (model_dump(mode="json")) и
проверяется против своей схемы. Схемы поставляются как package data
в schema/ рядом с этим модулем.

Pydantic проверяет модель при создании; контракт проверяет то, что
реально уходит в хранилище (model_construct и model_copy(update=...)
Pydantic валидацию обходят).
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, Type

from jsonschema import Draft202012Validator, SchemaError, ValidationError
from pydantic import BaseModel

from src.core.domain.basket import Basket
from src.core.domain.compliance import KycRecord
from src.core.domain.position import Position

SCHEMA_DIR = Path(__file__).parent / "schema"

# Тип record -> имя схемы в SCHEMA_DIR
RECORD_SCHEMAS: Dict[Type[BaseModel], str] = {
    Basket: "basket",
    Position: "position",
    KycRecord: "kyc_record",
}


# =============================================================================
# SCHEMA LOADING
# =============================================================================


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> Dict[str, Any]:
    """
    Загрузка и meta-валидация схемы (кэшируется).

    Args:
        schema_name: Имя схемы без расширения (например, 'basket')

    Raises:
        FileNotFoundError: схемы нет в SCHEMA_DIR
        ValueError: файл не является валидной Draft 2020-12 схемой
    """
    schema_path = SCHEMA_DIR / f"{schema_name}.json"
    if not schema_path.is_file():
        raise FileNotFoundError(f"Schema not found: {schema_path}")

    with open(schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)

    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e.message}") from e

    return schema


@lru_cache(maxsize=None)
def validator_for(schema_name: str) -> Draft202012Validator:
    return Draft202012Validator(load_schema(schema_name))


def schema_name_for(record: BaseModel) -> str:
    try:
        return RECORD_SCHEMAS[type(record)]
    except KeyError:
        raise TypeError(f"No contract for record type {type(record).__name__}") from None


# =============================================================================
# VALIDATION
# =============================================================================


def validate_record(record: BaseModel) -> None:
    """
    Проверка record перед сохранением.

    Raises:
        TypeError: для типа record нет контракта
        ValidationError: сериализованный record нарушает схему
    """
    validator_for(schema_name_for(record)).validate(record.model_dump(mode="json"))


def validate_payload(schema_name: str, data: Dict[str, Any]) -> None:
    """Проверка уже сериализованного record (например, из хранилища)."""
    validator_for(schema_name).validate(data)


def iter_violations(schema_name: str, data: Dict[str, Any]) -> Iterator[ValidationError]:
    """Все нарушения схемы сразу, без исключения."""
    return validator_for(schema_name).iter_errors(data)
