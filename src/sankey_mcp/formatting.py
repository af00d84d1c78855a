"""Rupee label formatting for node and link values."""

from __future__ import annotations

RUPEE = "₹"

CRORE = 10_000_000
LAKH = 100_000
THOUSAND = 1_000


def _group_indian(digits: str) -> str:
    """Insert separators the Indian way: last three digits, then pairs."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: float) -> str:
    """Full amount with Indian digit grouping, e.g. ``₹12,34,567.5``."""
    sign = "-" if amount < 0 else ""
    whole, _, frac = f"{abs(amount):.2f}".partition(".")
    frac = frac.rstrip("0")
    text = _group_indian(whole)
    if frac:
        text = f"{text}.{frac}"
    return f"{sign}{RUPEE}{text}"


def format_compact_currency(amount: float) -> str:
    """Short label: ``₹1.2Cr``, ``₹7.5L``, ``₹80.0K`` or ``₹500``."""
    if amount >= CRORE:
        return f"{RUPEE}{amount / CRORE:.1f}Cr"
    if amount >= LAKH:
        return f"{RUPEE}{amount / LAKH:.1f}L"
    if amount >= THOUSAND:
        return f"{RUPEE}{amount / THOUSAND:.1f}K"
    return f"{RUPEE}{amount:.0f}"
