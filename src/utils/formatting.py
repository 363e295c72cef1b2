"""Display formatting helpers for SiteBudget.

Rounding happens only here; the consistency engine never rounds.
"""

from typing import Optional

from babel.core import UnknownLocaleError
from babel.numbers import UnknownCurrencyError, format_currency as babel_format_currency


def format_currency(amount: float, currency: str, locale: Optional[str] = None) -> str:
    """Render an amount as a localized currency string.

    Falls back to "<CODE> 1,234.50" for unknown currencies or locales.
    """
    if locale is None:
        from config.settings import settings
        locale = settings.currency_locale
    try:
        return babel_format_currency(amount, currency, locale=locale)
    except (UnknownCurrencyError, UnknownLocaleError, ValueError):
        return f"{currency} {amount:,.2f}"


def format_quantity(quantity: float) -> str:
    """Quantity with thousands separators and at most two decimals."""
    text = f"{quantity:,.2f}"
    return text.rstrip("0").rstrip(".") if "." in text else text
