CURRENCY_SYMBOL = "₹"


def _group_indian(digits: str) -> str:
    """Group an integer digit string as 12,34,567 (last three, then pairs)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_currency(amount: float, symbol: str = CURRENCY_SYMBOL) -> str:
    sign = "-" if amount < 0 else ""
    whole, fraction = f"{abs(amount):.2f}".split(".")
    return f"{sign}{symbol}{_group_indian(whole)}.{fraction}"
