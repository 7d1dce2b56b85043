"""Currency display helpers - formatting and demo conversion against XAF"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Union

COUNTRY_CURRENCIES: Dict[str, str] = {
    "Cameroun": "XAF",
    "Congo Brazzaville": "XAF",
    "Gabon": "XAF",
    "Guinée Équatoriale": "XAF",
    "République Centrafricaine": "XAF",
    "Tchad": "XAF",
    "Sénégal": "XAF",
    "France": "EUR",
    "Italie": "EUR",
    "Canada": "CAD",
    "États-Unis": "USD",
    "Royaume-Uni": "GBP",
    "Suisse": "CHF",
}

# XAF per one unit of each currency
XAF_PER_UNIT: Dict[str, Decimal] = {
    "XAF": Decimal("1"),
    "EUR": Decimal("655.957"),
    "USD": Decimal("580.5"),
    "CAD": Decimal("430.2"),
    "GBP": Decimal("735.8"),
    "CHF": Decimal("640.1"),
}


def currency_for_country(country: str) -> str:
    """Display currency for a country, XAF when unknown"""
    return COUNTRY_CURRENCIES.get(country, "XAF")


def convert_currency(amount: Union[Decimal, int], from_currency: str, to_currency: str) -> Decimal:
    """
    Convert between currencies through XAF using the demo rate table.

    Unknown currencies are treated as XAF. Display only: fee and commission
    math always stays in the base currency.
    """
    amount = Decimal(amount)
    if from_currency == to_currency:
        return amount
    xaf_amount = amount * XAF_PER_UNIT.get(from_currency, Decimal("1"))
    return xaf_amount / XAF_PER_UNIT.get(to_currency, Decimal("1"))


def format_currency(amount: Union[Decimal, int], currency: str = "XAF") -> str:
    """Format with space-grouped thousands and no decimals, e.g. '10 100 XAF'"""
    whole = Decimal(amount).copy_abs().quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    grouped = f"{int(whole):,}".replace(",", " ")
    return f"{grouped} {currency}"
