"""
Tipo de valor monetário de precisão arbitrária

Todos os valores monetários do SDK passam por Money, que guarda o número
como decimal.Decimal (sinal + sequência de dígitos + escala) e nunca como
float binário.

Exemplo de uso:
    from xgate_sdk.money import Money

    total = Money("100.50") + Money("200.25") + Money("300.75")
    print(total)               # 601.5
    print(total.to_fixed(2))   # 601.50
"""

import math
import re
from decimal import (
    Context, Decimal, DivisionByZero, InvalidOperation, Overflow,
    ROUND_HALF_UP, MAX_EMAX, MAX_PREC, MIN_EMIN
)
from typing import Dict, Iterable, Optional, Union

from .exceptions import MoneyFormatError


MoneyLike = Union['Money', Decimal, int, float, str]

_NUMERAL = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')

# Soma, subtração e multiplicação são sempre exatas neste contexto
_EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN,
                 rounding=ROUND_HALF_UP,
                 traps=[InvalidOperation, DivisionByZero, Overflow])


def _round_half_up(numerator: int, denominator: int) -> int:
    """Divisão inteira arredondando metade para longe do zero"""
    negative = (numerator < 0) != (denominator < 0)
    quotient, remainder = divmod(abs(numerator), abs(denominator))
    if remainder * 2 >= abs(denominator):
        quotient += 1
    return -quotient if negative else quotient


def _to_integer_parts(value: Decimal):
    """Decompõe um Decimal finito em (inteiro com sinal, expoente)"""
    sign, digits, exponent = value.as_tuple()
    integer = int(''.join(map(str, digits))) if digits else 0
    return (-integer if sign else integer), exponent


class Money:
    """
    Valor monetário imutável com aritmética decimal exata

    Toda operação devolve uma nova instância. A divisão é exata até
    DEFAULT_SCALE casas decimais (ou a escala informada) e usa
    arredondamento half-up (metade para longe do zero).
    """

    __slots__ = ('_value',)

    DEFAULT_SCALE = 18

    def __init__(self, value: MoneyLike = '0'):
        object.__setattr__(self, '_value', self._coerce(value))

    @staticmethod
    def _coerce(value: MoneyLike) -> Decimal:
        if isinstance(value, Money):
            return value._value
        if isinstance(value, bool):
            raise MoneyFormatError(f"Valor monetário inválido: {value!r}")
        if isinstance(value, int):
            return Decimal(value)
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise MoneyFormatError(f"Valor monetário inválido: {value!r}")
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise MoneyFormatError(f"Valor monetário inválido: {value!r}")
            # repr() produz a menor representação decimal do float, às vezes com expoente
            return Decimal(repr(value))
        if isinstance(value, str):
            return Money._parse(value)
        raise MoneyFormatError(f"Tipo não suportado para valor monetário: {type(value).__name__}")

    @staticmethod
    def _parse(text: str) -> Decimal:
        cleaned = text.strip()
        if not _NUMERAL.match(cleaned):
            raise MoneyFormatError(f"Numeral decimal inválido: {text!r}")
        return Decimal(cleaned)

    @classmethod
    def of(cls, value: MoneyLike) -> 'Money':
        """
        Construtor único usado nas fronteiras da API

        Args:
            value: str, int, float, Decimal ou Money

        Returns:
            Money: A própria instância quando já é Money
        """
        if isinstance(value, Money):
            return value
        return cls(value)

    @classmethod
    def parse(cls, text: str) -> 'Money':
        return cls(cls._parse(text))

    @classmethod
    def zero(cls) -> 'Money':
        return cls(0)

    @classmethod
    def sum(cls, amounts: Iterable[MoneyLike]) -> 'Money':
        total = Decimal(0)
        for amount in amounts:
            total = _EXACT.add(total, cls.of(amount)._value)
        return cls(total)

    def __setattr__(self, name, value):
        raise AttributeError("Money é imutável")

    # Aritmética

    def add(self, other: MoneyLike) -> 'Money':
        return Money(_EXACT.add(self._value, Money.of(other)._value))

    def subtract(self, other: MoneyLike) -> 'Money':
        return Money(_EXACT.subtract(self._value, Money.of(other)._value))

    def multiply(self, other: MoneyLike) -> 'Money':
        return Money(_EXACT.multiply(self._value, Money.of(other)._value))

    def divide(self, other: MoneyLike, scale: Optional[int] = None) -> 'Money':
        """
        Divide com resultado exato até `scale` casas decimais

        Args:
            other: Divisor
            scale (int, optional): Casas decimais do resultado (padrão DEFAULT_SCALE)

        Returns:
            Money: Quociente arredondado half-up

        Raises:
            ZeroDivisionError: Divisor igual a zero
        """
        divisor = Money.of(other)._value
        if divisor == 0:
            raise ZeroDivisionError("Divisão de valor monetário por zero")
        scale = self.DEFAULT_SCALE if scale is None else scale

        numerator, num_exp = _to_integer_parts(self._value)
        denominator, den_exp = _to_integer_parts(divisor)
        shift = num_exp - den_exp + scale
        if shift >= 0:
            numerator *= 10 ** shift
        else:
            denominator *= 10 ** (-shift)

        quotient = _round_half_up(numerator, denominator)
        return Money(Decimal(quotient).scaleb(-scale, _EXACT))

    def negate(self) -> 'Money':
        return Money(_EXACT.minus(self._value))

    def abs(self) -> 'Money':
        return Money(_EXACT.abs(self._value))

    def compare(self, other: MoneyLike) -> int:
        """Retorna -1, 0 ou 1 conforme a ordem entre os valores"""
        other_value = Money.of(other)._value
        if self._value < other_value:
            return -1
        if self._value > other_value:
            return 1
        return 0

    def is_zero(self) -> bool:
        return self._value == 0

    def is_positive(self) -> bool:
        return self._value > 0

    def is_negative(self) -> bool:
        return self._value < 0

    # Arredondamento e formatação

    def round(self, scale: int = 2) -> 'Money':
        """Arredonda para `scale` casas decimais (half-up)"""
        quantum = Decimal(1).scaleb(-scale)
        rounded = self._value.quantize(quantum, rounding=ROUND_HALF_UP, context=_EXACT)
        if rounded == 0:
            rounded = rounded.copy_abs()
        return Money(rounded)

    def round_to_increment(self, increment: MoneyLike) -> 'Money':
        """
        Arredonda para o múltiplo mais próximo de `increment`

        Exemplo: Money("10.37").round_to_increment("0.05") == Money("10.35")
        """
        step = Money.of(increment)
        steps = self.divide(step, scale=0)
        return steps.multiply(step)

    def to_fixed(self, scale: int = 2) -> str:
        """Formata com exatamente `scale` casas decimais"""
        return format(self.round(scale)._value, 'f')

    def as_decimal(self) -> Decimal:
        return self._value

    @property
    def scale(self) -> int:
        """Número de casas decimais da forma canônica"""
        exponent = self._canonical().as_tuple().exponent
        return -exponent if exponent < 0 else 0

    def _canonical(self) -> Decimal:
        if self._value == 0:
            return Decimal(0)
        return self._value.normalize(_EXACT)

    def __str__(self) -> str:
        return format(self._canonical(), 'f')

    def __repr__(self) -> str:
        return f"Money('{self}')"

    # Protocolo numérico do Python

    def __eq__(self, other) -> bool:
        if isinstance(other, (Money, Decimal, int)) and not isinstance(other, bool):
            return self._value == Money.of(other)._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __lt__(self, other) -> bool:
        return self.compare(other) < 0

    def __le__(self, other) -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other) -> bool:
        return self.compare(other) > 0

    def __ge__(self, other) -> bool:
        return self.compare(other) >= 0

    def __add__(self, other) -> 'Money':
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other) -> 'Money':
        return self.subtract(other)

    def __rsub__(self, other) -> 'Money':
        return Money.of(other).subtract(self)

    def __mul__(self, other) -> 'Money':
        return self.multiply(other)

    __rmul__ = __mul__

    def __truediv__(self, other) -> 'Money':
        return self.divide(other)

    def __neg__(self) -> 'Money':
        return self.negate()

    def __abs__(self) -> 'Money':
        return self.abs()

    def __bool__(self) -> bool:
        return not self.is_zero()

    def __reduce__(self):
        return (Money, (str(self),))


class MoneyFormatter:
    """
    Formatação e cálculos auxiliares sobre valores monetários

    Toda aritmética passa por Money; floats só são aceitos como entrada.
    """

    SYMBOLS: Dict[str, str] = {
        'USD': '$',
        'BRL': 'R$',
        'EUR': '€',
        'GBP': '£',
        'BTC': '₿',
    }

    def __init__(self,
                 currency: str = 'USD',
                 scale: int = 2,
                 decimal_separator: str = '.',
                 thousands_separator: str = ','):
        self.currency = currency.upper()
        self.scale = scale
        self.decimal_separator = decimal_separator
        self.thousands_separator = thousands_separator

    def format(self, amount: MoneyLike, currency: Optional[str] = None) -> str:
        """
        Formata valor como moeda

        Args:
            amount: Valor a formatar
            currency (str, optional): Código da moeda (padrão do formatter)

        Returns:
            str: Valor formatado, ex: "$1,234.50" ou "-R$10.00"
        """
        value = Money.of(amount)
        symbol = self.get_symbol(currency)
        formatted = self.format_decimal(value.abs(), self.scale)
        sign = '-' if value.round(self.scale).is_negative() else ''
        return f"{sign}{symbol}{formatted}"

    def format_decimal(self, amount: MoneyLike, decimals: int = 2) -> str:
        """Formata com separador de milhar e `decimals` casas fixas"""
        fixed = Money.of(amount).to_fixed(decimals)
        negative = fixed.startswith('-')
        if negative:
            fixed = fixed[1:]
        integer_part, _, fraction = fixed.partition('.')

        groups = []
        while len(integer_part) > 3:
            groups.insert(0, integer_part[-3:])
            integer_part = integer_part[:-3]
        groups.insert(0, integer_part)

        result = self.thousands_separator.join(groups)
        if fraction:
            result = f"{result}{self.decimal_separator}{fraction}"
        return f"-{result}" if negative else result

    def format_crypto(self, amount: MoneyLike, symbol: str, decimals: int = 8) -> str:
        return f"{self.format_decimal(amount, decimals)} {symbol.upper()}"

    def format_compact(self, amount: MoneyLike) -> str:
        """Notação compacta: 1.5K, 2.3M, 1.0B"""
        value = Money.of(amount)
        magnitude = value.abs()
        for threshold, suffix in ((10 ** 9, 'B'), (10 ** 6, 'M'), (10 ** 3, 'K')):
            if magnitude >= threshold:
                return f"{self.format_decimal(value.divide(threshold), 1)}{suffix}"
        return self.format_decimal(value, 2)

    def parse(self, text: str) -> Money:
        """
        Converte texto monetário em Money removendo símbolos e separadores

        Args:
            text (str): Ex: "R$ 1.234,56" (com separadores do formatter)

        Returns:
            Money: Valor numérico

        Raises:
            MoneyFormatError: Texto sem numeral válido
        """
        cleaned = text.replace(self.thousands_separator, '')
        if self.decimal_separator != '.':
            cleaned = cleaned.replace(self.decimal_separator, '.')
        cleaned = re.sub(r'[^0-9.\-]', '', cleaned)
        return Money(cleaned or '0')

    def sum(self, amounts: Iterable[MoneyLike]) -> Money:
        return Money.sum(amounts)

    def percentage(self, amount: MoneyLike, percentage: MoneyLike) -> Money:
        return Money.of(amount).multiply(percentage).divide(100)

    def calculate_fee(self,
                      amount: MoneyLike,
                      fee_rate: MoneyLike,
                      is_percentage: bool = True) -> Dict[str, Money]:
        """
        Calcula taxa e total de uma operação

        Returns:
            Dict: {'amount': Money, 'fee': Money, 'total': Money}
        """
        base = Money.of(amount)
        fee = self.percentage(base, fee_rate) if is_percentage else Money.of(fee_rate)
        return {
            'amount': base,
            'fee': fee,
            'total': base.add(fee)
        }

    def convert(self, amount: MoneyLike, rate: MoneyLike) -> Money:
        return Money.of(amount).multiply(rate)

    def round_to_increment(self, amount: MoneyLike, increment: MoneyLike) -> Money:
        return Money.of(amount).round_to_increment(increment)

    def get_symbol(self, currency: Optional[str] = None) -> str:
        code = (currency or self.currency).upper()
        return self.SYMBOLS.get(code, f"{code} ")
