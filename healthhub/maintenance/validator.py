"""Backup validator — structural gate in front of every restore."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..errors import BackupValidationError
from ..schemas import BackupData, ValidationResult


def _missing(value: Any) -> bool:
    # Empty objects and lists count as present
    return value is None or value is False or value == "" or (
        isinstance(value, (int, float)) and value == 0
    )


def validate_backup(document: Any) -> ValidationResult:
    """Check that a document has the backup shape.

    Structural only: required keys must be present and ``data.textCards``
    must be a list. Every problem is collected, in a fixed order.
    """
    if not isinstance(document, dict):
        document = {}

    errors: list[str] = []

    if _missing(document.get("version")):
        errors.append("Missing backup version")
    if _missing(document.get("backupDate")):
        errors.append("Missing backup date")
    if _missing(document.get("userId")):
        errors.append("Missing user ID")

    data = document.get("data")
    if _missing(data):
        errors.append("Missing backup data")
    else:
        if not isinstance(data, dict) or _missing(data.get("layouts")):
            errors.append("Missing layouts data")
        if not isinstance(data, dict) or not isinstance(data.get("textCards"), list):
            errors.append("Text cards data is not an array")

    return ValidationResult(valid=not errors, errors=errors)


def parse_backup(document: Any) -> BackupData:
    """Validate a raw document and convert it to ``BackupData``.

    Raises:
        BackupValidationError: structural problems, or field values that
        cannot be read as layouts, presets or text cards.
    """
    result = validate_backup(document)
    if not result.valid:
        raise BackupValidationError(result.errors)

    try:
        return BackupData.model_validate(document)
    except PydanticValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise BackupValidationError(problems) from e
