from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from reservation_client.core.models import FieldError, SubmissionRecord, ValidationResult, field_text


REQUIRED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("firstName", "First name"),
    ("lastName", "Last name"),
    ("email", "Email address"),
    ("phone", "Phone number"),
    ("grade", "Grade level"),
    ("gender", "Gender"),
    ("englishLevel", "English proficiency"),
    ("preferredDays", "Preferred days"),
    ("preferredTime", "Preferred time"),
    ("sessionLength", "Session length"),
)

# Declaration order of every checked field, optional ones last.
FIELD_ORDER: Tuple[str, ...] = tuple(name for name, _ in REQUIRED_FIELDS) + ("gpa",)

VALID_GRADES = frozenset(str(g) for g in range(4, 13))

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_PHONE_RE = re.compile(r"^[\d\s\-\(\)\+]{10,}$")
_NAME_RE = re.compile(r"^[a-zA-Z\s\-'\.]{2,50}$")


def _text(value: Any) -> str:
    return (field_text(value) or "").strip()


def _check_email(value: str) -> Optional[str]:
    return None if _EMAIL_RE.match(value) else "Please enter a valid email address"


def _check_phone(value: str) -> Optional[str]:
    return None if _PHONE_RE.match(value) else "Please enter a valid phone number"


def _check_name(label: str) -> Callable[[str], Optional[str]]:
    def _rule(value: str) -> Optional[str]:
        return None if _NAME_RE.match(value) else f"{label} contains invalid characters"

    return _rule


def _check_gpa(value: str) -> Optional[str]:
    try:
        gpa = float(value)
    except ValueError:
        return "GPA must be between 0.0 and 4.0"
    if math.isnan(gpa) or gpa < 0.0 or gpa > 4.0:
        return "GPA must be between 0.0 and 4.0"
    return None


def _check_grade(value: str) -> Optional[str]:
    return None if value in VALID_GRADES else "Please select a valid grade level"


FORMAT_RULES: Dict[str, Callable[[str], Optional[str]]] = {
    "firstName": _check_name("First name"),
    "lastName": _check_name("Last name"),
    "email": _check_email,
    "phone": _check_phone,
    "grade": _check_grade,
    "gpa": _check_gpa,
}


def validate(record: Union[Mapping[str, Any], SubmissionRecord]) -> ValidationResult:
    """
    Description: Check every field rule and collect all violations.
    Layer: L0
    Input: raw form mapping (camelCase keys) or SubmissionRecord
    Output: ValidationResult with errors in field-declaration order

    Notes:
      - Never short-circuits; a blank mandatory field reports "required" and
        skips its format rule.
      - Pure: the input is only read.
    """
    data: Mapping[str, Any] = record.to_wire() if isinstance(record, SubmissionRecord) else record
    labels = dict(REQUIRED_FIELDS)
    errors: List[FieldError] = []

    for name in FIELD_ORDER:
        value = _text(data.get(name))
        if not value:
            if name in labels:
                errors.append(FieldError(field=name, message=f"{labels[name]} is required"))
            continue
        rule = FORMAT_RULES.get(name)
        message = rule(value) if rule else None
        if message:
            errors.append(FieldError(field=name, message=message))

    return ValidationResult(is_valid=not errors, errors=errors)
