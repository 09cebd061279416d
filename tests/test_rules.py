"""
Tests for the extraction rule helpers (cartscraper/scraper/rules.py).
"""

from __future__ import annotations

import pytest

from cartscraper.scraper.rules import (
    field_rules,
    first_list,
    first_value,
    has_any_field,
    is_present,
    resolve_path,
)


class TestRules:
    def test_field_rules_split_dotted_paths(self) -> None:
        rules = field_rules("data.cart.items", "")

        assert rules[0].path == ("data", "cart", "items")
        assert rules[0].dotted == "data.cart.items"
        assert rules[1].path == ()
        assert rules[1].dotted == "<self>"

    def test_resolve_path(self) -> None:
        (rule,) = field_rules("a.b")

        assert resolve_path({"a": {"b": 1}}, rule) == 1
        assert resolve_path({"a": {"c": 1}}, rule) is None
        assert resolve_path({"a": [1]}, rule) is None
        assert resolve_path("text", rule) is None

    def test_empty_path_is_the_value(self) -> None:
        (rule,) = field_rules("")
        assert resolve_path([1, 2], rule) == [1, 2]

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}, ()])
    def test_absent_values(self, value: object) -> None:
        assert not is_present(value)

    @pytest.mark.parametrize("value", [0, False, "x", [0], {"k": None}])
    def test_present_values(self, value: object) -> None:
        assert is_present(value)

    def test_first_value_skips_blank(self) -> None:
        rules = field_rules("name", "title")
        assert first_value({"name": "", "title": "Top"}, rules) == "Top"
        assert first_value({}, rules) is None

    def test_first_list_skips_empty_and_non_lists(self) -> None:
        rules = field_rules("a", "b", "c")
        assert first_list({"a": [], "b": {"x": 1}, "c": [3]}, rules) == [3]
        assert first_list({"a": []}, rules) is None

    def test_has_any_field(self) -> None:
        assert has_any_field({"goods_id": "1"}, ("goods_id", "sku"))
        assert not has_any_field({"goods_id": ""}, ("goods_id",))
        assert not has_any_field(["goods_id"], ("goods_id",))
