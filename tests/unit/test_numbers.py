import pytest

from underwriter.extraction.numbers import is_numeric, parse_numeric


class TestParseNumeric:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1,234", 1234.0),
            ("$1,234.50", 1234.5),
            (" 42 ", 42.0),
            ("-15", -15.0),
            ("(1,200)", -1200.0),
            ("$(1,200)", -1200.0),
            ("$ (350.25)", -350.25),
            (".5", 0.5),
            (1500, 1500.0),
            (12.5, 12.5),
        ],
    )
    def test_numbers(self, value: object, expected: float) -> None:
        assert parse_numeric(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, "", "n/a", "Unit 101", "12 units", "1BR", "Jan-24", True, float("nan"), "()"],
    )
    def test_not_numbers(self, value: object) -> None:
        assert parse_numeric(value) is None

    def test_is_numeric(self) -> None:
        assert is_numeric("$5")
        assert not is_numeric("five")
