from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int, float]


def format_currency(
    amount: Number,
    symbol: str = "Rp",
    thousands_sep: str = ".",
    decimals: int = 0,
) -> str:
    """Format an amount as currency text, e.g. 'Rp 1.200.000'."""
    value = Decimal(str(amount))
    quantum = Decimal(1).scaleb(-decimals)
    value = value.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""

    text = f"{abs(value):,.{decimals}f}"
    if thousands_sep != ",":
        # Swap separators without clobbering each other
        decimal_sep = "," if thousands_sep == "." else "."
        text = text.replace(",", "\0").replace(".", decimal_sep).replace("\0", thousands_sep)

    return f"{sign}{symbol} {text}" if symbol else f"{sign}{text}"


def format_signed(
    amount: Number,
    symbol: str = "Rp",
    thousands_sep: str = ".",
    decimals: int = 0,
) -> str:
    """Format with an explicit +/- sign."""
    sign = "+" if amount >= 0 else "-"
    return sign + format_currency(abs(Decimal(str(amount))), symbol, thousands_sep, decimals)


def format_percent(value: Number, decimals: int = 1) -> str:
    return f"{float(value):.{decimals}f}%"
