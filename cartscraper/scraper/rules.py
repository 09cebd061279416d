"""
Cart Scraper — Extraction Rules

Field lookups over untyped JSON are expressed as ordered lists of
FieldRule paths instead of nested `.get()` chains, so the same rule list
can be inspected, swapped per site, and tested on its own.

    rules = field_rules("data.cart.items", "cart.goodsList", "items")
    items = first_list(payload, rules)
"""

from __future__ import annotations

from typing import Any, Iterable, NamedTuple


class FieldRule(NamedTuple):
    """A dotted path into a JSON value, e.g. ("sale_price", "amount")."""

    path: tuple[str, ...]

    @property
    def dotted(self) -> str:
        return ".".join(self.path) if self.path else "<self>"


def field_rules(*dotted: str) -> tuple[FieldRule, ...]:
    """Build rules from dotted strings. An empty string means the value itself."""
    return tuple(FieldRule(tuple(p for p in d.split(".") if p)) for d in dotted)


def is_present(value: Any) -> bool:
    """Presence test used for every lookup: None, "" and empty containers are absent."""
    if value is None:
        return False
    if isinstance(value, (str, list, dict, tuple)) and len(value) == 0:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def resolve_path(value: Any, rule: FieldRule) -> Any:
    """Walk a rule's path through nested dicts. Missing keys resolve to None."""
    current = value
    for key in rule.path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def first_value(value: Any, rules: Iterable[FieldRule]) -> Any:
    """Return the first present value produced by the rules, in order."""
    for rule in rules:
        found = resolve_path(value, rule)
        if is_present(found):
            return found
    return None


def first_list(value: Any, rules: Iterable[FieldRule]) -> list[Any] | None:
    """Return the first non-empty list produced by the rules, in order."""
    for rule in rules:
        found = resolve_path(value, rule)
        if isinstance(found, list) and found:
            return found
    return None


def has_any_field(item: Any, names: Iterable[str]) -> bool:
    if not isinstance(item, dict):
        return False
    return any(is_present(item.get(name)) for name in names)
