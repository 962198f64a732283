import copy

from conftest import good_form

from reservation_client.core.models import SubmissionRecord
from reservation_client.guards.validation_service import REQUIRED_FIELDS, validate


def test_complete_form_is_valid() -> None:
    result = validate(good_form())
    assert result.is_valid
    assert result.errors == []


def test_each_missing_mandatory_field_is_named() -> None:
    labels = dict(REQUIRED_FIELDS)
    for name, label in labels.items():
        form = good_form()
        form[name] = "   "
        result = validate(form)
        assert not result.is_valid
        assert name in result.fields
        assert any(label in m for m in result.messages)


def test_all_violations_are_reported_in_declaration_order() -> None:
    form = good_form()
    form.update({"firstName": "A1", "email": "not-an-email", "phone": "123", "grade": "3", "gpa": "4.5"})
    del form["gender"]
    result = validate(form)
    assert result.fields == ["firstName", "email", "phone", "grade", "gender", "gpa"]
    assert result.messages == [
        "First name contains invalid characters",
        "Please enter a valid email address",
        "Please enter a valid phone number",
        "Please select a valid grade level",
        "Gender is required",
        "GPA must be between 0.0 and 4.0",
    ]


def test_gpa_rules() -> None:
    for bad in ("abc", "-0.1", "4.01", "nan"):
        form = good_form()
        form["gpa"] = bad
        assert validate(form).fields == ["gpa"], bad
    for ok in ("0", "3.7", "4.0", ""):
        form = good_form()
        form["gpa"] = ok
        assert validate(form).is_valid, ok


def test_grade_accepts_numbers_and_names_accept_punctuation() -> None:
    form = good_form()
    form.update({"grade": 12, "firstName": "Mary-Jo", "lastName": "O'Neil Jr."})
    assert validate(form).is_valid


def test_validate_does_not_mutate_input() -> None:
    form = good_form()
    form.update({"email": "  bad  ", "extra": ["x"]})
    before = copy.deepcopy(form)
    validate(form)
    assert form == before


def test_validate_accepts_submission_record() -> None:
    record = SubmissionRecord.model_validate(good_form())
    assert validate(record).is_valid


def test_empty_multi_select_counts_as_blank() -> None:
    form = good_form()
    form["preferredDays"] = []
    result = validate(form)
    assert not result.is_valid
    assert result.messages == ["Preferred days is required"]

    form["preferredDays"] = ["Mon", "Wed"]
    assert validate(form).is_valid
    assert SubmissionRecord.model_validate(form).preferred_days == "Mon, Wed"
