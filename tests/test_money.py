"""Testes para xgate_sdk.money.

Cobre: Money (construção, aritmética exata, divisão, arredondamento,
forma canônica) e MoneyFormatter.
"""

import pickle
from decimal import Decimal

import pytest

from xgate_sdk.exceptions import MoneyFormatError
from xgate_sdk.money import Money, MoneyFormatter


class TestMoneyConstruction:
    """Testes de construção e forma canônica."""

    @pytest.mark.parametrize("text", ["0", "1", "100.50", "-3.25", "0.000000000000000001", "123456789012345678901234567890.5"])
    def test_parse_round_trip_is_numerically_equal(self, text: str) -> None:
        """Converter para string e de volta preserva o valor."""
        value = Money(text)
        assert Money(str(value)) == value

    def test_canonical_string_strips_trailing_zeros(self) -> None:
        assert str(Money("100.50")) == "100.5"
        assert str(Money("100.00")) == "100"
        assert str(Money("-0.0")) == "0"

    def test_canonical_string_never_uses_exponent(self) -> None:
        assert str(Money(Decimal("1E+2"))) == "100"
        assert str(Money("0.0000001")) == "0.0000001"

    @pytest.mark.parametrize("text", ["abc", "", "1.2.3", "1e5", "--1", "1,50", "NaN"])
    def test_invalid_text_raises_money_format_error(self, text: str) -> None:
        with pytest.raises(MoneyFormatError):
            Money(text)

    def test_money_format_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Money("not a number")

    def test_float_uses_shortest_decimal_representation(self) -> None:
        assert str(Money(0.1)) == "0.1"
        assert Money(0.1) + Money(0.2) == Money("0.3")

    @pytest.mark.parametrize("number, text", [
        (0.00001, "0.00001"),
        (1e-08, "0.00000001"),
        (1e16, "10000000000000000"),
        (-2.5e-07, "-0.00000025"),
    ])
    def test_float_in_exponent_form(self, number: float, text: str) -> None:
        """Floats cujo repr usa expoente viram o mesmo valor decimal"""
        assert Money(number) == Money(text)
        assert str(Money(number)) == text

    @pytest.mark.parametrize("number", [float('nan'), float('inf'), float('-inf')])
    def test_non_finite_float_is_rejected(self, number: float) -> None:
        with pytest.raises(MoneyFormatError):
            Money(number)

    def test_decimal_in_exponent_form(self) -> None:
        assert str(Money(Decimal("1E-8"))) == "0.00000001"

    def test_bool_is_rejected(self) -> None:
        with pytest.raises(MoneyFormatError):
            Money(True)

    def test_infinite_decimal_is_rejected(self) -> None:
        with pytest.raises(MoneyFormatError):
            Money(Decimal("Infinity"))

    def test_of_returns_same_instance(self) -> None:
        value = Money("5")
        assert Money.of(value) is value

    def test_is_immutable(self) -> None:
        value = Money("5")
        with pytest.raises(AttributeError):
            value._value = Decimal("6")

    def test_pickle_preserves_value(self) -> None:
        value = Money("42.42")
        assert pickle.loads(pickle.dumps(value)) == value

    def test_scale_of_canonical_form(self) -> None:
        assert Money("10.250").scale == 2
        assert Money("10").scale == 0


class TestMoneyArithmetic:
    """Testes de aritmética exata."""

    def test_sum_is_exact(self) -> None:
        total = Money("100.50") + Money("200.25") + Money("300.75")
        assert str(total) == "601.5"
        assert total.to_fixed(2) == "601.50"

    def test_sum_classmethod(self) -> None:
        assert Money.sum(["100.50", "200.25", "300.75"]) == Money("601.50")
        assert Money.sum([]) == Money.zero()

    def test_add_then_subtract_is_identity(self) -> None:
        a = Money("12345.678901234567890123")
        b = Money("0.000000000000000000001")
        assert a.add(b).subtract(b) == a

    def test_multiply_is_exact(self) -> None:
        assert Money("1.1").multiply("1.1") == Money("1.21")
        assert Money("0.000001") * 1000000 == Money(1)

    def test_large_values_keep_all_digits(self) -> None:
        big = Money("9" * 32 + ".99")
        assert str(big + Money("0.01")) == "1" + "0" * 32

    def test_divide_by_zero_raises(self) -> None:
        with pytest.raises(ZeroDivisionError):
            Money("10").divide(0)

    def test_divide_default_scale(self) -> None:
        assert str(Money(1).divide(3)) == "0." + "3" * 18
        assert str(Money(2).divide(3)) == "0." + "6" * 17 + "7"

    def test_divide_rounds_half_away_from_zero(self) -> None:
        assert Money("1").divide("8", scale=2) == Money("0.13")
        assert Money("-1").divide("8", scale=2) == Money("-0.13")

    def test_divide_exact_result(self) -> None:
        assert Money("601.50").divide(3) == Money("200.5")

    def test_negate_and_abs(self) -> None:
        assert -Money("5") == Money("-5")
        assert abs(Money("-5")) == Money("5")

    def test_compare(self) -> None:
        assert Money("1.0").compare("1") == 0
        assert Money("1").compare("2") == -1
        assert Money("2").compare("1") == 1
        assert Money("1") < Money("1.01")

    def test_equal_values_hash_equally(self) -> None:
        assert hash(Money("1.50")) == hash(Money("1.5"))

    def test_predicates(self) -> None:
        assert Money("0.00").is_zero()
        assert Money("0.01").is_positive()
        assert Money("-0.01").is_negative()
        assert not Money(0)


class TestMoneyRounding:
    """Testes de arredondamento."""

    def test_round_half_up(self) -> None:
        assert Money("2.345").round(2) == Money("2.35")
        assert Money("-2.345").round(2) == Money("-2.35")

    def test_round_negative_zero_is_zero(self) -> None:
        assert str(Money("-0.001").round(2)) == "0"

    def test_to_fixed_pads_zeros(self) -> None:
        assert Money("5").to_fixed(2) == "5.00"
        assert Money("1.005").to_fixed(2) == "1.01"

    def test_round_to_increment(self) -> None:
        assert Money("10.37").round_to_increment("0.05") == Money("10.35")
        assert Money("10.38").round_to_increment("0.05") == Money("10.40")


class TestMoneyFormatter:
    """Testes para MoneyFormatter."""

    def test_format_usd(self) -> None:
        assert MoneyFormatter().format("1234.5") == "$1,234.50"

    def test_format_negative(self) -> None:
        assert MoneyFormatter(currency='BRL').format("-10") == "-R$10.00"

    def test_format_unknown_currency_uses_code(self) -> None:
        assert MoneyFormatter().format("1", currency="JPY") == "JPY 1.00"

    def test_format_brazilian_separators(self) -> None:
        formatter = MoneyFormatter('BRL', decimal_separator=',', thousands_separator='.')
        assert formatter.format("1234567.891") == "R$1.234.567,89"

    def test_format_crypto(self) -> None:
        assert MoneyFormatter().format_crypto("0.5", "btc") == "0.50000000 BTC"

    def test_format_compact(self) -> None:
        formatter = MoneyFormatter()
        assert formatter.format_compact("1500") == "1.5K"
        assert formatter.format_compact("2300000") == "2.3M"
        assert formatter.format_compact("-1000000000") == "-1.0B"
        assert formatter.format_compact("999") == "999.00"

    def test_parse_brazilian_text(self) -> None:
        formatter = MoneyFormatter('BRL', decimal_separator=',', thousands_separator='.')
        assert formatter.parse("R$ 1.234,56") == Money("1234.56")

    def test_parse_invalid_text_raises(self) -> None:
        with pytest.raises(MoneyFormatError):
            MoneyFormatter().parse("1.2.3")

    def test_percentage_and_fee(self) -> None:
        formatter = MoneyFormatter()
        assert formatter.percentage("200", "2.5") == Money("5")

        fee = formatter.calculate_fee("100", "1.5")
        assert fee == {'amount': Money("100"), 'fee': Money("1.5"), 'total': Money("101.5")}

        flat = formatter.calculate_fee("100", "3", is_percentage=False)
        assert flat['total'] == Money("103")

    def test_convert(self) -> None:
        assert MoneyFormatter().convert("0.5", "60000") == Money("30000")
