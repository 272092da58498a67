import pytest

from utils.validators import (
    ValidationError,
    parse_command,
    parse_filters,
    sanitize_text,
    validate_choice,
    validate_user_id,
)


def test_parse_command_lowercases_name_and_keeps_args():
    assert parse_command("  GagStock on Sunflower | Can ") == (
        "gagstock",
        ["on", "Sunflower", "|", "Can"],
    )
    assert parse_command("/help") == ("help", [])


def test_parse_command_rejects_empty_and_long_text():
    with pytest.raises(ValidationError):
        parse_command("   ")
    with pytest.raises(ValidationError):
        sanitize_text("x" * 501)


def test_parse_filters_normalizes_and_dedupes():
    assert parse_filters(["Sunflower", "|", "Watering", "Can", "|", "sunflower", "|", ""]) == [
        "sunflower",
        "watering can",
    ]
    assert parse_filters([]) == []


def test_parse_filters_limits():
    with pytest.raises(ValidationError):
        parse_filters(["x" * 51])
    with pytest.raises(ValidationError):
        parse_filters([" | ".join(f"item{i}" for i in range(21))])


@pytest.mark.parametrize(
    "user_id, valid",
    [("1234567890", True), ("abc_DEF-1", True), ("", False), ("has space", False), (None, False)],
)
def test_validate_user_id(user_id, valid):
    assert validate_user_id(user_id)[0] is valid


def test_validate_choice():
    assert validate_choice(" ON ", ("on", "off")) == (True, "on")
    assert validate_choice("maybe", ("on", "off")) == (False, "maybe")
    assert validate_choice(None, ("on", "off")) == (False, None)
