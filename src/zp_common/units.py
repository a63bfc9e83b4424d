"""Integer arithmetic utilities for token amounts.

All balances, costs and payouts are int base units scaled by 10^18
(same as ERC-20 with 18 decimals). No float, no Decimal in domain code.
"""

from decimal import Decimal

from config.settings import settings

TOKEN_DECIMALS = 18
WEI_PER_TOKEN = 10**TOKEN_DECIMALS


def tokens_to_wei(tokens: int) -> int:
    """Whole tokens -> base units: 1000 -> 1000 * 10^18."""
    return tokens * WEI_PER_TOKEN


def wei_to_display(amount: int, symbol: str | None = None) -> str:
    """Base units -> display string: 10^21 -> '1,000.00 HOBO'.

    Truncates below 1/100 of a token.
    """
    symbol = symbol or settings.TOKEN_SYMBOL
    sign = "-" if amount < 0 else ""
    hundredths = abs(amount) // (WEI_PER_TOKEN // 100)
    return f"{sign}{hundredths // 100:,}.{hundredths % 100:02d} {symbol}"


def from_db_numeric(value: Decimal | int | None) -> int:
    """NUMERIC(78,0) columns come back from asyncpg as Decimal."""
    if value is None:
        return 0
    return int(value)
