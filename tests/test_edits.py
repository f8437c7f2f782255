"""
Tests for ingredient edit primitives and the audit log format.
"""

from datetime import datetime, timedelta, timezone

import pytest

from mealplan_api.domain import Component
from mealplan_api.edits import (
    append_audit,
    audit_line,
    match_ingredient_by_name,
    replace_component,
    replace_ingredient,
    toggle_ingredient,
)
from mealplan_api.exceptions import NotFoundError, ValidationFailure

COMPONENTS = {
    "chicken": Component.MEAT,
    "teriyaki": Component.SAUCE,
    "bbq": Component.SAUCE,
    "rice": Component.STARCH,
    "broccoli": Component.VEGGIES,
}


class TestReplaceComponent:

    def test_replaces_every_id_of_component(self):
        updated = replace_component(["chicken", "teriyaki", "bbq", "rice"], COMPONENTS, Component.SAUCE, "ranch")
        assert updated == ["chicken", "rice", "ranch"]

    def test_none_leaves_section_empty(self):
        updated = replace_component(["chicken", "teriyaki"], COMPONENTS, Component.SAUCE, None)
        assert updated == ["chicken"]

    def test_also_remove_covers_unclassified_ids(self):
        updated = replace_component(["chicken", "house"], COMPONENTS, Component.SAUCE, "bbq", also_remove=["house"])
        assert updated == ["chicken", "bbq"]

    def test_does_not_duplicate_new_id(self):
        updated = replace_component(["rice", "chicken"], COMPONENTS, Component.MEAT, "rice")
        assert updated == ["rice"]


class TestReplaceIngredient:

    def test_swaps_one_id(self):
        assert replace_ingredient(["chicken", "rice"], "chicken", "steak") == ["rice", "steak"]

    def test_new_id_already_present(self):
        assert replace_ingredient(["chicken", "steak"], "chicken", "steak") == ["steak"]


class TestToggleIngredient:

    def test_activate_appends_once(self):
        once = toggle_ingredient(["rice"], "broccoli", True)
        assert once == ["rice", "broccoli"]
        assert toggle_ingredient(once, "broccoli", True) == once

    def test_deactivate_removes_every_occurrence(self):
        assert toggle_ingredient(["broccoli", "rice", "broccoli"], "broccoli", False) == ["rice"]

    def test_deactivate_absent_is_noop(self):
        assert toggle_ingredient(["rice"], "broccoli", False) == ["rice"]

    def test_does_not_mutate_input(self):
        current = ["rice"]
        toggle_ingredient(current, "broccoli", True)
        assert current == ["rice"]


class TestMatchIngredientByName:

    CANDIDATES = {
        "r1": "Red Peppers",
        "g1": "Green Peppers",
        "b1": "Broccoli",
        "c1": "Chicken",
        "c2": "Chicken Thigh",
    }

    def test_exact_case_insensitive(self):
        assert match_ingredient_by_name("broccoli", self.CANDIDATES) == "b1"

    def test_exact_beats_substring(self):
        assert match_ingredient_by_name("Chicken", self.CANDIDATES) == "c1"

    def test_single_substring(self):
        assert match_ingredient_by_name("thigh", self.CANDIDATES) == "c2"

    def test_ambiguous_lists_candidates(self):
        with pytest.raises(ValidationFailure) as exc_info:
            match_ingredient_by_name("peppers", self.CANDIDATES)
        assert {c["id"] for c in exc_info.value.details} == {"r1", "g1"}

    def test_no_match(self):
        with pytest.raises(NotFoundError):
            match_ingredient_by_name("tofu", self.CANDIDATES)

    def test_blank_query(self):
        with pytest.raises(ValidationFailure):
            match_ingredient_by_name("  ", self.CANDIDATES)


class TestAuditLog:

    def test_line_format(self):
        now = datetime(2025, 1, 3, 12, 0, 5, tzinfo=timezone.utc)
        assert audit_line("Sauce changed", now) == "[2025-01-03 12:00:05 UTC] Sauce changed"

    def test_line_converts_to_utc(self):
        now = datetime(2025, 1, 3, 7, 0, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert audit_line("x", now).startswith("[2025-01-03 12:00:00 UTC]")

    def test_append(self):
        assert append_audit("", "first") == "first"
        assert append_audit("first", "second") == "first\nsecond"
