import math

from config import config


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 and round(abs(amount), 2) > 0 else ""
    return f"{sign}{config.CURRENCY_SYMBOL}{abs(amount):.2f}"


def parse_currency(amount_str: str) -> float:
    cleaned = amount_str.replace(',', '.').replace(' ', '').strip()

    try:
        amount = float(cleaned)
    except ValueError:
        raise ValueError("Invalid amount format")

    if not math.isfinite(amount):
        raise ValueError("Invalid amount format")

    return round(amount, 2)
