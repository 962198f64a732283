from conftest import good_form

from reservation_client.core.models import SubmissionRecord
from reservation_client.guards.sanitizer import (
    MAX_DISPLAY_CHARS,
    MAX_TEXT_CHARS,
    sanitize,
    sanitize_display_text,
    sanitize_fields,
    sanitize_text,
)


def test_script_blocks_and_brackets_are_removed() -> None:
    assert sanitize_text("  hi <SCRIPT>alert(1)</script> there ") == "hi  there"
    assert sanitize_text("<b>bold</b>") == "bbold/b"


def test_uri_schemes_and_handlers_are_neutralized() -> None:
    assert sanitize_text("JavaScript:alert(1)") == "alert(1)"
    assert sanitize_text("vbscript:msgbox") == "msgbox"
    assert sanitize_text('img onerror = "x"') == 'img  "x"'
    assert sanitize_text("Monday") == "Monday"
    assert sanitize_text("xonclick=run") == "xrun"


def test_nested_payloads_do_not_survive_a_single_pass() -> None:
    assert sanitize_text("javajavascript:script:alert(1)") == "alert(1)"
    assert sanitize_text("vbsvbscript:cript:x") == "x"


def test_length_caps() -> None:
    assert len(sanitize_text("a" * 900)) == MAX_TEXT_CHARS
    assert len(sanitize_display_text("b" * 900)) == MAX_DISPLAY_CHARS


def test_sanitize_is_idempotent() -> None:
    samples = [
        "  <script>x</script>   padded  ",
        "javajavascript:script:go",
        "x" * 499 + "   y",
        "onload=onload==<<>>",
        "plain text",
        " " * 10,
    ]
    for s in samples:
        once = sanitize_text(s)
        assert sanitize_text(once) == once, s


def test_record_sanitize_is_idempotent_and_immutable() -> None:
    form = good_form()
    form["learningGoals"] = "  Speak <i>fluently</i> javascript:void(0) "
    record = SubmissionRecord.model_validate(form)
    once = sanitize(record)
    assert once.learning_goals == "Speak ifluently/i void(0)"
    assert sanitize(once) == once
    assert record.learning_goals.startswith("  Speak")


def test_non_string_values_pass_through() -> None:
    out = sanitize_fields({"a": 3, "b": None, "c": [" <x> "], "d": " ok "})
    assert out == {"a": 3, "b": None, "c": [" <x> "], "d": "ok"}
