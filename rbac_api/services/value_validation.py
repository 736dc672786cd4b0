"""Checks applied to property values before they are stored."""
from __future__ import annotations

import json
import logging
import re
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from rbac_api.models.entity_definition import PropertyDefinition
from rbac_api.models.enums import DataType
from rbac_api.utils.errors import ValidationError
from rbac_api.utils.time import parse_iso_utc

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\+?[0-9 ()./-]{4,32}$")
_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


def _reject(definition: PropertyDefinition, reason: str, message: str) -> None:
    logger.info("Property value rejected", extra={"property": definition.name, "reason": reason})
    raise ValidationError(
        f"Value for property '{definition.name}' {message}.",
        code="INVALID_PROPERTY_VALUE",
        details={"property": definition.name, "reason": reason},
    )


def _check_data_type(definition: PropertyDefinition, value: str) -> Any:
    """Parse ``value`` per the definition's data type; returns the parsed form."""

    kind = definition.data_type
    try:
        if kind == DataType.INTEGER:
            return int(value.strip())
        if kind == DataType.DECIMAL:
            parsed = Decimal(value.strip())
            if not parsed.is_finite():
                raise InvalidOperation
            return parsed
        if kind == DataType.BOOLEAN:
            lowered = value.strip().lower()
            if lowered not in _TRUE | _FALSE:
                raise ValueError(value)
            return lowered in _TRUE
        if kind == DataType.DATETIME:
            return parse_iso_utc(value.strip())
        if kind == DataType.DATE:
            return date.fromisoformat(value.strip())
        if kind == DataType.TIME:
            return time.fromisoformat(value.strip())
        if kind == DataType.LIST:
            parsed = json.loads(value)
            if not isinstance(parsed, list):
                raise ValueError("not a list")
            return parsed
        if kind == DataType.JSON:
            return json.loads(value)
    except (ValueError, InvalidOperation):
        _reject(definition, "DATA_TYPE", f"is not a valid {kind.value}")

    if kind == DataType.EMAIL:
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            _reject(definition, "DATA_TYPE", "is not a valid Email")
    elif kind == DataType.PHONE:
        if not _PHONE_RE.match(value.strip()):
            _reject(definition, "DATA_TYPE", "is not a valid Phone")
    elif kind == DataType.URL:
        parsed_url = urlparse(value.strip())
        if parsed_url.scheme not in {"http", "https"} or not parsed_url.netloc:
            _reject(definition, "DATA_TYPE", "is not a valid Url")
    return value


def load_rules(definition: PropertyDefinition) -> dict[str, Any]:
    if not definition.validation_rules:
        return {}
    try:
        rules = json.loads(definition.validation_rules)
    except ValueError:
        logger.warning("Ignoring unreadable validation rules", extra={"property_definition_id": str(definition.id)})
        return {}
    return rules if isinstance(rules, dict) else {}


def check_rules_document(raw: str | None) -> None:
    """Validate a ``validation_rules`` document before it is stored on a definition."""

    if not raw:
        return
    rules = json.loads(raw)
    if not isinstance(rules, dict):
        raise ValidationError("validationRules must be a JSON object.", code="INVALID_VALIDATION_RULES")
    for key in ("minLength", "maxLength"):
        if key in rules and (not isinstance(rules[key], int) or rules[key] < 0):
            raise ValidationError(f"validationRules.{key} must be a non-negative integer.", code="INVALID_VALIDATION_RULES")
    for key in ("min", "max"):
        if key in rules and (isinstance(rules[key], bool) or not isinstance(rules[key], (int, float))):
            raise ValidationError(f"validationRules.{key} must be a number.", code="INVALID_VALIDATION_RULES")
    if "allowedValues" in rules and not isinstance(rules["allowedValues"], list):
        raise ValidationError("validationRules.allowedValues must be a list.", code="INVALID_VALIDATION_RULES")
    if "pattern" in rules:
        try:
            re.compile(rules["pattern"])
        except (re.error, TypeError) as exc:
            raise ValidationError(
                "validationRules.pattern is not a valid regular expression.", code="INVALID_VALIDATION_RULES"
            ) from exc


def _check_rules(definition: PropertyDefinition, value: str, parsed: Any) -> None:
    rules = load_rules(definition)
    if not rules:
        return

    min_length = rules.get("minLength")
    if min_length is not None and len(value) < int(min_length):
        _reject(definition, "MIN_LENGTH", f"must be at least {min_length} characters")
    max_length = rules.get("maxLength")
    if max_length is not None and len(value) > int(max_length):
        _reject(definition, "MAX_LENGTH", f"must be at most {max_length} characters")

    pattern = rules.get("pattern")
    if pattern and re.fullmatch(pattern, value) is None:
        _reject(definition, "PATTERN", f"does not match pattern {pattern}")

    allowed = rules.get("allowedValues")
    if allowed and value not in [str(item) for item in allowed]:
        _reject(definition, "ALLOWED_VALUES", "is not one of the allowed values")

    if isinstance(parsed, (int, Decimal)) and not isinstance(parsed, bool):
        number = Decimal(parsed)
        minimum = rules.get("min")
        if minimum is not None and number < Decimal(str(minimum)):
            _reject(definition, "MIN", f"must be >= {minimum}")
        maximum = rules.get("max")
        if maximum is not None and number > Decimal(str(maximum)):
            _reject(definition, "MAX", f"must be <= {maximum}")


def validate_property_value(definition: PropertyDefinition, value: str | None) -> None:
    """Raise ``ValidationError`` when ``value`` does not satisfy ``definition``.

    Empty values only fail for required properties; type and rule checks apply
    to non-empty values.
    """

    if value is None or value == "":
        if definition.is_required:
            _reject(definition, "REQUIRED", "is required")
        return

    parsed = _check_data_type(definition, value)
    _check_rules(definition, value, parsed)


__all__ = ["check_rules_document", "load_rules", "validate_property_value"]
