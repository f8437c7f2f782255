"""
Tests for PlanService operations against the seeded in-memory store.
"""

from unittest.mock import patch

import pytest

from mealplan_api import config, fields as f
from mealplan_api.domain import OrderLine
from mealplan_api.exceptions import (
    ConflictError,
    ExternalStoreError,
    ExternalWriteFailure,
    NotFoundError,
    ValidationFailure,
)
from mealplan_api.store import StoreError

from conftest import ALICE_TOKEN, BOB_TOKEN, DINNER_DATE, LUNCH_DATE


def _load(store, record_id):
    return OrderLine.from_record(store.find(f.ORDERS_TABLE, record_id))


class TestGetPlan:

    def test_alice_plan(self, service, seeded):
        plan = service.get_plan(ALICE_TOKEN)

        assert plan["customer"] == {"name": "Alice Smith", "email": "alice@example.com"}
        assert plan["nutritionGoals"]["calories"] == 2000

        assert len(plan["groups"]) == 1
        group = plan["groups"][0]
        assert group["deliveryDate"] == LUNCH_DATE
        assert group["mealTypes"] == ["Lunch"]
        assert [d["itemName"] for d in group["dishes"]] == [
            "Teriyaki Chicken Bowl", "Garden Salad", "Steak & Sweet Potato",
        ]

        bowl = plan["orders"][0]
        assert bowl["quantity"] == 2
        assert bowl["recordId"] == seeded["alice_line_1"]
        assert plan["currentTotals"]["calories"] == 1100
        assert plan["summary"] == {"totalMeals": 2, "calorieProgress": 55.0}

    def test_bob_plan_without_profile(self, service, seeded):
        plan = service.get_plan(BOB_TOKEN)

        assert plan["nutritionGoals"]["calories"] == 0
        assert plan["nutritionGoals"]["allergies"] == []
        assert plan["summary"]["calorieProgress"] == 0
        group = plan["groups"][0]
        assert group["deliveryDate"] == DINNER_DATE
        assert [d["itemName"] for d in group["dishes"]] == ["Steak & Sweet Potato"]
        assert group["dishes"][0]["imageUrl"] == "https://img.example.com/steak.jpg"
        assert group["dishes"][0]["calories"] == config.DEFAULT_NUTRITION["calories"]

    def test_customer_without_lines_gets_placeholder(self, service, store, seeded):
        store.create(f.CUSTOMERS_TABLE, [{f.CUSTOMER_TOKEN: "tok-carol", f.CUSTOMER_NAME: "Carol"}])
        plan = service.get_plan("tok-carol")

        assert plan["orders"] == []
        group = plan["groups"][0]
        assert group["deliveryDate"] is None
        assert group["mealTypes"] == ["Lunch", "Dinner"]
        assert len(group["dishes"]) == 4

    def test_allergies_resolved_on_goals_and_orders(self, service, seeded):
        plan = service.get_plan(ALICE_TOKEN)

        assert plan["nutritionGoals"]["allergies"] == ["Gluten Free"]
        assert plan["orders"][0]["allergies"] == ["Tree Nuts"]
        available = [d for d in plan["groups"][0]["dishes"] if d["isAvailable"]]
        assert available and all(d["allergies"] == [] for d in available)

    def test_allergy_lookup_failure_shows_ids(self, service, store, seeded):
        real_list = store.list

        def allergies_down(table, *args, **kwargs):
            if table == f.ALLERGIES_TABLE:
                raise StoreError("down", operation="list", table=table)
            return real_list(table, *args, **kwargs)

        with patch.object(store, "list", side_effect=allergies_down):
            plan = service.get_plan(ALICE_TOKEN)

        assert plan["nutritionGoals"]["allergies"] == [seeded["gluten_free"]]
        assert plan["orders"][0]["allergies"] == [seeded["tree_nuts"]]

    def test_unknown_token(self, service, seeded):
        with pytest.raises(NotFoundError):
            service.get_plan("tok-nobody")

    def test_menu_failure_still_serves_orders(self, service, store, seeded):
        real_list = store.list

        def menu_down(table, *args, **kwargs):
            if table == f.MENU_TABLE:
                raise StoreError("down", operation="list", table=table)
            return real_list(table, *args, **kwargs)

        with patch.object(store, "list", side_effect=menu_down):
            plan = service.get_plan(ALICE_TOKEN)

        assert [d["itemName"] for d in plan["groups"][0]["dishes"]] == ["Teriyaki Chicken Bowl"]

    def test_order_lookup_failure(self, service, store, seeded):
        real_list = store.list

        def orders_down(table, *args, **kwargs):
            if table == f.ORDERS_TABLE:
                raise StoreError("down", operation="list", table=table)
            return real_list(table, *args, **kwargs)

        with patch.object(store, "list", side_effect=orders_down):
            with pytest.raises(ExternalStoreError):
                service.get_plan(ALICE_TOKEN)


class TestIngredientEdits:

    def test_toggle_veggie_off_writes_override_and_audit(self, service, store, seeded):
        result = service.toggle_veggie(ALICE_TOKEN, seeded["alice_line_1"], seeded["broccoli"], False)

        assert result["ingredientsVersion"] == 1
        assert seeded["broccoli"] not in result["updatedIngredientIds"]
        line = _load(store, seeded["alice_line_1"])
        assert line.final_ingredient_ids == [seeded["chicken"], seeded["teriyaki"], seeded["scallions"], seeded["rice"]]
        assert line.audit_log == "[2025-01-03 12:00:00 UTC] Removed veggies Broccoli"

        veggies = service.get_plan(ALICE_TOKEN)["orders"][0]["options"]["veggie"]
        assert [(o["id"], o["is_active"]) for o in veggies] == [(seeded["broccoli"], False)]

    def test_edit_reaches_every_serving_of_the_group(self, service, store, seeded):
        view = service.get_plan(ALICE_TOKEN)["orders"][0]
        assert view["quantity"] == 2

        service.toggle_veggie(ALICE_TOKEN, view["recordId"], seeded["broccoli"], False)

        for record_id in view["recordIds"]:
            line = _load(store, record_id)
            assert seeded["broccoli"] not in line.effective_ingredient_ids
            assert line.ingredients_version == 1
            assert line.audit_log == "[2025-01-03 12:00:00 UTC] Removed veggies Broccoli"

    def test_edit_through_second_serving(self, service, store, seeded):
        service.replace_sauce(ALICE_TOKEN, seeded["alice_line_2"], seeded["ranch"])

        first = _load(store, seeded["alice_line_1"])
        second = _load(store, seeded["alice_line_2"])
        assert first.final_ingredient_ids == second.final_ingredient_ids
        assert seeded["ranch"] in first.final_ingredient_ids
        assert service.get_plan(ALICE_TOKEN)["orders"][0]["quantity"] == 2

    def test_serving_added_after_edit_keeps_override(self, service, store, seeded):
        service.toggle_veggie(ALICE_TOKEN, seeded["alice_line_1"], seeded["broccoli"], False)
        created = service.update_quantity(ALICE_TOKEN, seeded["alice_line_1"], 3)["createdRecordIds"]

        line = _load(store, created[0])
        assert seeded["broccoli"] not in line.effective_ingredient_ids
        assert line.ingredients_version == 1

    def test_group_write_failure_reports_saved_servings(self, service, store, seeded):
        real_update = store.update
        saved = []

        def fail_after_first(table, record_id, fields):
            if saved:
                raise StoreError("down")
            saved.append(record_id)
            return real_update(table, record_id, fields)

        with patch.object(store, "update", side_effect=fail_after_first):
            with pytest.raises(ExternalWriteFailure) as exc_info:
                service.toggle_veggie(ALICE_TOKEN, seeded["alice_line_1"], seeded["broccoli"], False)

        assert exc_info.value.details["updatedRecordIds"] == [seeded["alice_line_1"]]

    def test_toggle_is_idempotent(self, service, store, seeded):
        first = service.toggle_garnish(ALICE_TOKEN, seeded["alice_line_1"], seeded["sesame"], True)
        second = service.toggle_garnish(ALICE_TOKEN, seeded["alice_line_1"], seeded["sesame"], True)
        assert first["updatedIngredientIds"] == second["updatedIngredientIds"]
        assert second["ingredientsVersion"] == 2

    def test_audit_entries_accumulate(self, service, store, seeded):
        service.toggle_garnish(ALICE_TOKEN, seeded["alice_line_1"], seeded["scallions"], False)
        service.replace_sauce(ALICE_TOKEN, seeded["alice_line_1"], seeded["ranch"])
        lines = _load(store, seeded["alice_line_1"]).audit_log.split("\n")
        assert lines == [
            "[2025-01-03 12:00:00 UTC] Removed garnish Scallions",
            "[2025-01-03 12:00:00 UTC] Sauce changed to Ranch",
        ]

    def test_wrong_component_rejected(self, service, seeded):
        with pytest.raises(ValidationFailure):
            service.toggle_veggie(ALICE_TOKEN, seeded["alice_line_1"], seeded["chicken"], True)

    def test_replace_sauce(self, service, seeded):
        result = service.replace_sauce(ALICE_TOKEN, seeded["alice_line_1"], seeded["bbq"])
        ids = result["updatedIngredientIds"]
        assert seeded["teriyaki"] not in ids
        assert ids[-1] == seeded["bbq"]

    def test_no_sauce(self, service, seeded):
        service.replace_sauce(ALICE_TOKEN, seeded["alice_line_1"], seeded["ranch"])
        result = service.replace_sauce(ALICE_TOKEN, seeded["alice_line_1"], None)
        assert result["message"] == "Sauce removed"
        assert seeded["ranch"] not in result["updatedIngredientIds"]

        sauce = service.get_plan(ALICE_TOKEN)["orders"][0]["options"]["sauce"]
        assert [o["id"] for o in sauce if o["is_active"]] == [None]

    def test_replace_starch(self, service, seeded):
        result = service.replace_starch(ALICE_TOKEN, seeded["alice_line_1"], seeded["quinoa"])
        assert seeded["rice"] not in result["updatedIngredientIds"]
        assert seeded["quinoa"] in result["updatedIngredientIds"]

    def test_replace_protein_defaults_to_first_meat(self, service, seeded):
        result = service.replace_protein(ALICE_TOKEN, seeded["alice_line_1"], seeded["tofu"])
        ids = result["updatedIngredientIds"]
        assert seeded["chicken"] not in ids
        assert seeded["tofu"] in ids
        assert result["message"] == "Protein updated to Tofu"

    def test_replace_protein_old_not_on_dish(self, service, seeded):
        with pytest.raises(NotFoundError):
            service.replace_protein(ALICE_TOKEN, seeded["alice_line_1"], seeded["tofu"], old_protein_id=seeded["steak"])

    def test_stale_version_conflicts(self, service, seeded):
        service.replace_starch(ALICE_TOKEN, seeded["alice_line_1"], seeded["quinoa"], expected_version=0)
        with pytest.raises(ConflictError) as exc_info:
            service.replace_starch(ALICE_TOKEN, seeded["alice_line_1"], seeded["rice"], expected_version=0)
        assert exc_info.value.details["currentVersion"] == 1

    def test_version_required_when_configured(self, service, seeded, monkeypatch):
        monkeypatch.setattr(config, "REQUIRE_INGREDIENTS_VERSION", True)
        with pytest.raises(ValidationFailure):
            service.replace_starch(ALICE_TOKEN, seeded["alice_line_1"], seeded["quinoa"])

    def test_other_customers_line_is_not_found(self, service, seeded):
        with pytest.raises(NotFoundError):
            service.toggle_veggie(ALICE_TOKEN, seeded["bob_line"], seeded["carrots"], False)

    def test_missing_line(self, service, seeded):
        with pytest.raises(NotFoundError):
            service.replace_sauce(ALICE_TOKEN, "recMissing", None)

    def test_write_failure(self, service, store, seeded):
        with patch.object(store, "update", side_effect=StoreError("down")):
            with pytest.raises(ExternalWriteFailure):
                service.replace_sauce(ALICE_TOKEN, seeded["alice_line_1"], None)


class TestNamedIngredientEdits:

    def test_toggle_by_name(self, service, seeded):
        result = service.toggle_ingredient(
            ALICE_TOKEN, seeded["alice_line_1"], False, ingredient_name="scallions",
        )
        assert "Scallions" not in result["activeIngredients"]
        assert {"id": seeded["scallions"], "name": "Scallions"} in result["allIngredients"]

        result = service.toggle_ingredient(
            ALICE_TOKEN, seeded["alice_line_1"], True, ingredient_name="Scallions",
        )
        assert result["activeIngredients"][-1] == "Scallions"

    def test_toggle_by_id_wins_over_name(self, service, seeded):
        result = service.toggle_ingredient(
            ALICE_TOKEN, seeded["alice_line_1"], False,
            ingredient_name="Broccoli", ingredient_id=seeded["rice"],
        )
        assert seeded["rice"] not in result["finalIngredientIds"]
        assert seeded["broccoli"] in result["finalIngredientIds"]

    def test_ambiguous_name(self, service, seeded):
        added = service.add_dish(ALICE_TOKEN, seeded["dish_salad"], "Lunch")
        with pytest.raises(ValidationFailure) as exc_info:
            service.toggle_ingredient(ALICE_TOKEN, added["recordId"], False, ingredient_name="peppers")
        assert len(exc_info.value.details) == 2

    def test_name_required(self, service, seeded):
        with pytest.raises(ValidationFailure):
            service.toggle_ingredient(ALICE_TOKEN, seeded["alice_line_1"], False)

    def test_delete_by_name(self, service, seeded):
        result = service.delete_ingredient(ALICE_TOKEN, seeded["alice_line_1"], ingredient_name="broccoli")
        assert result["updatedIngredients"] == ["Grilled Chicken", "Teriyaki Sauce", "Scallions", "White Rice"]

    def test_delete_unknown_name(self, service, seeded):
        with pytest.raises(NotFoundError):
            service.delete_ingredient(ALICE_TOKEN, seeded["alice_line_1"], ingredient_name="tofu")

    def test_delete_id_not_on_dish(self, service, seeded):
        with pytest.raises(NotFoundError):
            service.delete_ingredient(ALICE_TOKEN, seeded["alice_line_1"], ingredient_id=seeded["tofu"])


class TestQuantities:

    def test_update_quantity_from_any_line_of_group(self, service, store, seeded):
        result = service.update_quantity(ALICE_TOKEN, seeded["alice_line_2"], 3)
        assert result["previousQuantity"] == 2
        assert result["newQuantity"] == 3
        assert len(result["createdRecordIds"]) == 1
        assert service.get_plan(ALICE_TOKEN)["orders"][0]["quantity"] == 3

    def test_update_to_same_quantity(self, service, seeded):
        result = service.update_quantity(ALICE_TOKEN, seeded["alice_line_1"], 2)
        assert result["createdRecordIds"] == []
        assert result["deletedRecordIds"] == []
        assert "already 2" in result["message"]

    def test_remove_dish(self, service, seeded):
        result = service.update_quantity(ALICE_TOKEN, seeded["alice_line_1"], 0)
        assert sorted(result["deletedRecordIds"]) == sorted([seeded["alice_line_1"], seeded["alice_line_2"]])
        plan = service.get_plan(ALICE_TOKEN)
        assert plan["orders"] == []
        assert plan["groups"][0]["deliveryDate"] is None

    def test_stale_line_rejected(self, service, seeded):
        with pytest.raises(ValidationFailure):
            service.update_quantity(ALICE_TOKEN, seeded["alice_stale"], 2)

    def test_invalid_quantity(self, service, seeded):
        with pytest.raises(ValidationFailure):
            service.update_quantity(ALICE_TOKEN, seeded["alice_line_1"], -1)

    def test_batch_reports_each_update(self, service, seeded):
        result = service.batch_update_quantities(ALICE_TOKEN, [
            {"record_id": seeded["alice_line_1"], "new_quantity": 1, "quantity_delta": -1},
            {"record_id": seeded["bob_line"], "new_quantity": 2, "quantity_delta": 1},
            {"record_id": seeded["alice_line_2"], "new_quantity": 5, "quantity_delta": 0},
        ])

        assert result["success"] is False
        assert result["updatedCount"] == 1
        assert result["message"] == "Successfully updated 1 order(s)"
        assert [r["success"] for r in result["results"]] == [True, False]
        assert result["results"][1]["error"] == "Order not found"

    def test_batch_with_nothing_to_do(self, service, seeded):
        result = service.batch_update_quantities(ALICE_TOKEN, [
            {"record_id": seeded["alice_line_1"], "new_quantity": 2, "quantity_delta": 0},
        ])
        assert result == {"success": True, "updatedCount": 0, "message": "No changes to update", "results": []}


class TestAddDish:

    def test_add_then_fetch(self, service, store, seeded):
        result = service.add_dish(ALICE_TOKEN, seeded["dish_salad"], "Lunch")
        assert result["itemId"] == "Alice Smith Lunch 02"

        group = service.get_plan(ALICE_TOKEN)["groups"][0]
        salad = [d for d in group["dishes"] if d["dishId"] == seeded["dish_salad"]]
        assert len(salad) == 1
        assert salad[0]["isOrdered"] is True
        assert salad[0]["quantity"] == 1
        assert salad[0]["recordId"] == result["recordId"]

    def test_add_for_new_meal_type(self, service, seeded):
        result = service.add_dish(ALICE_TOKEN, seeded["dish_steak"], "Dinner")
        assert result["itemId"] == "Alice Smith Dinner 01"

    def test_add_existing_dish_conflicts(self, service, seeded):
        with pytest.raises(ConflictError):
            service.add_dish(ALICE_TOKEN, seeded["dish_teriyaki"], "Lunch")

    def test_dish_not_offered_for_meal(self, service, seeded):
        with pytest.raises(NotFoundError):
            service.add_dish(ALICE_TOKEN, seeded["dish_salad"], "Dinner")

    def test_missing_fields(self, service, seeded):
        with pytest.raises(ValidationFailure):
            service.add_dish(ALICE_TOKEN, "", "Lunch")

    def test_menu_failure(self, service, store, seeded):
        real_list = store.list

        def menu_down(table, *args, **kwargs):
            if table == f.MENU_TABLE:
                raise StoreError("down")
            return real_list(table, *args, **kwargs)

        with patch.object(store, "list", side_effect=menu_down):
            with pytest.raises(ExternalStoreError):
                service.add_dish(ALICE_TOKEN, seeded["dish_salad"], "Lunch")

    def test_new_dish_up_to_three_then_down_to_one_then_removed(self, service, store, seeded):
        record_id = service.add_dish(ALICE_TOKEN, seeded["dish_salad"], "Lunch")["recordId"]

        def salad_lines():
            return [
                l for l in (OrderLine.from_record(r) for r in store.list(f.ORDERS_TABLE))
                if l.dish_id == seeded["dish_salad"]
            ]

        up = service.update_quantity(ALICE_TOKEN, record_id, 3)
        assert (up["previousQuantity"], up["newQuantity"]) == (1, 3)
        assert sorted(l.line_number for l in salad_lines()) == [1, 2, 3]

        down = service.update_quantity(ALICE_TOKEN, record_id, 1)
        assert len(down["deletedRecordIds"]) == 2
        assert [l.id for l in salad_lines()] == [record_id]

        service.update_quantity(ALICE_TOKEN, record_id, 0)
        assert salad_lines() == []
