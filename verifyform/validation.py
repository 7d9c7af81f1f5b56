# verifyform/validation.py
from __future__ import annotations
import re
from re import Pattern
from typing import Any
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

# --- Type Aliases ---
ValidationResult = tuple[bool, str]
# A validator gets the value and the surrounding values dict (step values or an entry row)
ValidatorFunc = Callable[[Any | None, dict[str, Any]], ValidationResult]

# --- Regex Patterns (centralized) ---
EMAIL_PATTERN: Pattern[str] = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN: Pattern[str] = re.compile(r'^\d{10}$')
DATE_MONTH_PATTERN: Pattern[str] = re.compile(r'^\d{4}-\d{2}$')
DATE_DAY_PATTERN: Pattern[str] = re.compile(r'^\d{4}-\d{2}-\d{2}$')
DATE_FORMAT_MONTH: str = '%Y-%m'
DATE_FORMAT_DAY: str = '%Y-%m-%d'


class RuleType(str, Enum):
    REQUIRED = 'required'
    PATTERN = 'pattern'
    MIN_LENGTH = 'minLength'
    MAX_LENGTH = 'maxLength'


@dataclass(frozen=True)
class ValidationRule:
    """One declarative rule attached to a form field."""
    type: RuleType
    message: str
    value: Pattern[str] | int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'type': self.type.value, 'message': self.message}
        if isinstance(self.value, Pattern):
            data['value'] = self.value.pattern
        elif self.value is not None:
            data['value'] = self.value
        return data

# ===================================================================
# GENERIC VALIDATOR GENERATORS
# ===================================================================

def required(message: str = "This field is required.") -> ValidatorFunc:
    """Ensures a value is present: not None, not blank, not an empty list, not an unchecked box."""
    def validator(value: Any | None, values: dict[str, Any]) -> ValidationResult:
        if value is None or value is False:
            return False, message
        if isinstance(value, str) and not value.strip():
            return False, message
        if isinstance(value, (list, dict)) and not value:
            return False, message
        return True, ""
    return validator

def required_unless(flag_key: str, message: str) -> ValidatorFunc:
    """Like `required`, but skipped when `flag_key` is truthy in the same row (e.g. isCurrent)."""
    check = required(message)
    def validator(value: Any | None, values: dict[str, Any]) -> ValidationResult:
        if values.get(flag_key):
            return True, ""
        return check(value, values)
    return validator

def match_pattern(pattern: Pattern[str], message: str) -> ValidatorFunc:
    """Ensures a string value matches a regex pattern."""
    def validator(value: Any | None, values: dict[str, Any]) -> ValidationResult:
        # Empty values are `required`'s job; anything else present must be a matching string.
        if value is None or value == "":
            return True, ""
        if not isinstance(value, str) or not pattern.match(value.strip()):
            return False, message
        return True, ""
    return validator

def min_length(limit: int, message: str) -> ValidatorFunc:
    def validator(value: Any | None, values: dict[str, Any]) -> ValidationResult:
        if not value or not hasattr(value, '__len__'):
            return True, ""
        if len(value) < limit:
            return False, message
        return True, ""
    return validator

def max_length(limit: int, message: str) -> ValidatorFunc:
    def validator(value: Any | None, values: dict[str, Any]) -> ValidationResult:
        if not value or not hasattr(value, '__len__'):
            return True, ""
        if len(value) > limit:
            return False, message
        return True, ""
    return validator

def is_date_after(other_field_key: str, message: str) -> ValidatorFunc:
    """
    Validates that a YYYY-MM[-DD] date in one field is not before the date
    in another field of the same entry row.
    """
    def validator(value: Any | None, row_data: dict[str, Any]) -> ValidationResult:
        other_value = row_data.get(other_field_key)
        # Missing or malformed values are reported by the other validators.
        if not isinstance(value, str) or not isinstance(other_value, str):
            return True, ""
        if not _is_date_string(value) or not _is_date_string(other_value):
            return True, ""
        # ISO strings of equal precision compare chronologically
        if _pad_date(value) < _pad_date(other_value):
            return False, message
        return True, ""
    return validator

def is_date_string(message: str) -> ValidatorFunc:
    def validator(value: Any | None, values: dict[str, Any]) -> ValidationResult:
        if value is None or value == '':
            return True, ""
        if not isinstance(value, str) or not _is_date_string(value):
            return False, message
        return True, ""
    return validator

def _is_date_string(value: str) -> bool:
    """Shape check plus a real calendar parse, so 2020-13 or 2020-02-31 fail."""
    if DATE_DAY_PATTERN.fullmatch(value):
        date_format = DATE_FORMAT_DAY
    elif DATE_MONTH_PATTERN.fullmatch(value):
        date_format = DATE_FORMAT_MONTH
    else:
        return False
    try:
        datetime.strptime(value, date_format)
    except ValueError:
        return False
    return True

def _pad_date(value: str) -> str:
    return value if len(value) == 10 else f"{value}-01"

# ===================================================================
# RULE -> VALIDATOR
# ===================================================================

def build_validator(rule: ValidationRule) -> ValidatorFunc:
    """Turns a declarative rule into the matching validator function."""
    if rule.type is RuleType.REQUIRED:
        return required(rule.message)
    if rule.type is RuleType.PATTERN:
        if not isinstance(rule.value, Pattern):
            raise TypeError(f"Pattern rule needs a compiled regex, got {rule.value!r}")
        return match_pattern(rule.value, rule.message)
    if not isinstance(rule.value, int):
        raise TypeError(f"{rule.type.value} rule needs an integer limit, got {rule.value!r}")
    if rule.type is RuleType.MIN_LENGTH:
        return min_length(rule.value, rule.message)
    return max_length(rule.value, rule.message)

def first_error(validators: list[ValidatorFunc], value: Any | None, values: dict[str, Any]) -> str | None:
    """Runs validators in order; the first failing one wins."""
    for validator_func in validators:
        is_valid, msg = validator_func(value, values)
        if not is_valid:
            return msg
    return None
