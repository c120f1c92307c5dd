"""Tests for the 4-line diagnostic helpers."""

import pytest

from condparse import ConditionSyntaxError, ExpectedColon, format_diagnostic, format_error

PREFIX = 'Context: "'


def caret_col(msg):
    return msg.split("\n")[3].index("^")


def test_format_has_four_lines():
    text = 'status:active and name:"John'
    msg = format_diagnostic(text, 28, "Unterminated quoted string")
    lines = msg.split("\n")
    assert len(lines) == 4
    assert lines[0] == "Unterminated quoted string"
    assert lines[1] == "Position: 28"
    assert lines[2].startswith(PREFIX)
    assert "^" in lines[3]


def test_short_input_is_fully_included():
    msg = format_diagnostic("foo:bar", 3, "Test", 20)
    lines = msg.split("\n")
    assert lines[2] == 'Context: "foo:bar"'
    # caret sits under the character at the position
    assert lines[2][caret_col(msg)] == ":"


def test_context_is_clipped_to_radius():
    text = "a" * 50 + "X" + "b" * 50
    msg = format_diagnostic(text, 50, "Test", 20)
    context = msg.split("\n")[2][len(PREFIX):-1]
    assert len(context) <= 40
    assert "X" in context
    assert msg.split("\n")[2][caret_col(msg)] == "X"


def test_caret_at_start_and_end():
    text = "a" * 50 + "X" + "b" * 50
    msg = format_diagnostic(text, 0, "Test", 20)
    assert msg.split("\n")[3].strip() == "^"
    assert caret_col(msg) == len(PREFIX)

    msg = format_diagnostic(text, len(text) - 1, "Test", 20)
    assert f"Position: {len(text) - 1}" in msg
    assert msg.split("\n")[2][caret_col(msg)] == "b"


@pytest.mark.parametrize("position", [-5, 3, 500])
def test_out_of_range_positions_are_clamped(position):
    msg = format_diagnostic("abc", position, "Test")
    lines = msg.split("\n")
    assert lines[1] == f"Position: {position}"
    assert lines[2] == 'Context: "abc"'
    assert len(PREFIX) <= caret_col(msg) <= len(PREFIX) + 3


def test_multiline_input_stays_four_lines():
    msg = format_diagnostic("a:b\nc", 4, "Expected colon after key")
    assert len(msg.split("\n")) == 4


def test_format_error_wraps_diagnostic():
    err = format_error("foo:bar and baz", 12, "Expected colon after key")
    assert isinstance(err, ConditionSyntaxError)
    assert isinstance(err, SyntaxError)
    assert err.position == 12
    assert err.reason == "Expected colon after key"
    assert str(err) == format_diagnostic("foo:bar and baz", 12, "Expected colon after key")


def test_format_error_kind():
    err = format_error("foo", 3, "Expected colon after key", kind=ExpectedColon)
    assert isinstance(err, ExpectedColon)
    with pytest.raises(ConditionSyntaxError):
        raise err
