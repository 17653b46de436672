"""Quantity and currency formatting for reports and bills."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, NamedTuple, Optional, Union

Number = Union[int, float, Decimal]


class CurrencyInfo(NamedTuple):
    code: str
    symbol: str
    name: str
    locale: str


CURRENCIES: Dict[str, CurrencyInfo] = {
    "BRL": CurrencyInfo("BRL", "R$", "Real Brasileiro", "pt-BR"),
    "EUR": CurrencyInfo("EUR", "€", "Euro", "es-ES"),
    "USD": CurrencyInfo("USD", "$", "US Dollar", "en-US"),
}
DEFAULT_CURRENCY = "EUR"


def _round2(value: Number) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_quantity(value: Optional[Number]) -> str:
    """At most 2 decimals with trailing zeros dropped: 0.0083 -> "0.01", 2.50 -> "2.5"."""
    if value is None:
        return "0"
    rounded = _round2(value)
    if rounded == rounded.to_integral_value():
        return str(int(rounded))
    return format(rounded, "f").rstrip("0").rstrip(".")


def format_quantity_change(value: Optional[Number]) -> str:
    """Signed quantity: +5, -3.5."""
    if value is None:
        return "0"
    sign = "+" if value >= 0 else ""
    return f"{sign}{format_quantity(value)}"


def currency_info(code: Optional[str]) -> CurrencyInfo:
    return CURRENCIES.get((code or "").upper(), CURRENCIES[DEFAULT_CURRENCY])


def _group(digits: str, separator: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return separator.join(groups)


def format_currency(value: Number, code: Optional[str] = None) -> str:
    """Format money the way the currency's locale writes it.

    pt-BR: "R$ 1.234,56"; es-ES: "1234,56 €" (four-digit amounts are not
    grouped) and "12.345,67 €"; en-US: "$1,234.56".
    """
    info = currency_info(code)
    amount = _round2(value)
    negative = amount < 0
    integer_part, fraction = format(abs(amount), "f").split(".")

    if info.locale == "en-US":
        body = f"{_group(integer_part, ',')}.{fraction}"
        text = f"{info.symbol}{body}"
    elif info.locale == "es-ES":
        grouped = integer_part if len(integer_part) <= 4 else _group(integer_part, ".")
        text = f"{grouped},{fraction} {info.symbol}"
    else:
        text = f"{info.symbol} {_group(integer_part, '.')},{fraction}"

    return f"-{text}" if negative else text
