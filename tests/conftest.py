from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import mealplan_api.config as config_mod
from mealplan_api import fields as f
from mealplan_api.app_factory import create_app
from mealplan_api.caches import IngredientClassifierCache, VariantCatalogCache
from mealplan_api.models import Base
from mealplan_api.routes import limiter
from mealplan_api.services.plan import PlanService
from mealplan_api.store import SqlRecordStore

# Test admin credentials
TEST_ADMIN_USERNAME = "testadmin"
TEST_ADMIN_PASSWORD = "testpassword123"

ALICE_TOKEN = "tok-alice"
BOB_TOKEN = "tok-bob"
LUNCH_DATE = "2025-01-06"
DINNER_DATE = "2025-01-07"

FIXED_NOW = datetime(2025, 1, 3, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


@pytest.fixture
def store():
    """Empty SqlRecordStore on an in-memory SQLite DB.

    Uses StaticPool so all connections share the same in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SqlRecordStore(TestingSessionLocal)
    engine.dispose()


def _create(store, table, fields):
    return store.create(table, [fields])[0].id


def _ingredient(store, name, component):
    return _create(store, f.INGREDIENTS_TABLE, {"Ingredient Name": name, f.INGREDIENT_COMPONENT: component})


@pytest.fixture
def seeded(store):
    """Seed a small weekly menu, two customers and their order lines.

    Returns a dict of the created record ids by short name.
    """
    ids = {}

    # Ingredients
    for key, name, component in [
        ("chicken", "Grilled Chicken", "Meat"),
        ("steak", "Steak", "Meat"),
        ("tofu", "Tofu", "Meat"),
        ("teriyaki", "Teriyaki Sauce", "Sauce"),
        ("bbq", "BBQ Sauce", "Sauce"),
        ("ranch", "Ranch", "Sauce"),
        ("scallions", "Scallions", "Garnish"),
        ("sesame", "Sesame Seeds", "Garnish"),
        ("broccoli", "Broccoli", "Veggies"),
        ("carrots", "Carrots", "Veggies"),
        ("red_peppers", "Red Peppers", "Veggies"),
        ("green_peppers", "Green Peppers", "Veggies"),
        ("rice", "White Rice", "Starch"),
        ("quinoa", "Quinoa", "Starch"),
        ("sweet_potato", "Sweet Potato", "Starch"),
    ]:
        ids[key] = _ingredient(store, name, component)

    # Variants
    ids["v_standard"] = _create(store, f.VARIANTS_TABLE, {
        f.VARIANT_TYPE: "Protein Substitution",
        f.VARIANT_NAME: "Standard",
        f.VARIANT_APPLICABLE_TO: ["Lunch", "Dinner"],
        f.VARIANT_INGREDIENTS: [ids["chicken"], ids["steak"]],
        f.VARIANT_PRICE: 0,
        f.VARIANT_AVAILABILITY: True,
    })
    ids["v_premium"] = _create(store, f.VARIANTS_TABLE, {
        f.VARIANT_TYPE: "Protein Substitution",
        f.VARIANT_NAME: "Plant Based",
        f.VARIANT_APPLICABLE_TO: ["Lunch"],
        f.VARIANT_INGREDIENTS: [ids["tofu"]],
        f.VARIANT_PRICE: 3.5,
        f.VARIANT_AVAILABILITY: True,
    })
    ids["v_starch"] = _create(store, f.VARIANTS_TABLE, {
        f.VARIANT_TYPE: "Starch Substitution",
        f.VARIANT_NAME: "Starch Swap",
        f.VARIANT_APPLICABLE_TO: ["Lunch", "Dinner"],
        f.VARIANT_INGREDIENTS: [ids["quinoa"], ids["sweet_potato"]],
        f.VARIANT_AVAILABILITY: True,
    })

    # Weekly menu
    ids["dish_teriyaki"] = _create(store, f.MENU_TABLE, {
        f.MENU_TITLE: "Teriyaki Chicken Bowl",
        f.MENU_MEAL: ["Lunch"],
        f.MENU_INGREDIENTS: [ids["chicken"], ids["teriyaki"], ids["scallions"], ids["broccoli"], ids["rice"]],
        f.MENU_ACTIVE: True,
        f.CALORIES: 550,
        f.PROTEIN: 40,
    })
    ids["dish_steak"] = _create(store, f.MENU_TABLE, {
        f.MENU_TITLE: "Steak & Sweet Potato",
        f.MENU_MEAL: ["Lunch", "Dinner"],
        f.MENU_INGREDIENTS: [ids["steak"], ids["bbq"], ids["carrots"], ids["sweet_potato"]],
        f.MENU_ACTIVE: True,
        f.CALORIES: 650,
        "Images": [{"url": "https://img.example.com/steak.jpg"}],
    })
    ids["dish_salad"] = _create(store, f.MENU_TABLE, {
        f.MENU_TITLE: "Garden Salad",
        f.MENU_MEAL: ["Lunch"],
        f.MENU_INGREDIENTS: [ids["broccoli"], ids["carrots"], ids["red_peppers"], ids["green_peppers"]],
        f.MENU_ACTIVE: True,
        f.CALORIES: 300,
    })

    # Allergy and diet restrictions
    ids["gluten_free"] = _create(store, f.ALLERGIES_TABLE, {f.ALLERGY_NAME: "Gluten Free"})
    ids["tree_nuts"] = _create(store, f.ALLERGIES_TABLE, {f.ALLERGY_NAME: "Tree Nuts"})

    # Customers and nutrition profile
    ids["alice"] = _create(store, f.CUSTOMERS_TABLE, {
        f.CUSTOMER_TOKEN: ALICE_TOKEN,
        f.CUSTOMER_NAME: "Alice Smith",
        f.CUSTOMER_EMAIL: "alice@example.com",
        f.CUSTOMER_CLIENT_IDENTIFIER: "Alice Smith | Lunch | alice@example.com",
    })
    ids["bob"] = _create(store, f.CUSTOMERS_TABLE, {
        f.CUSTOMER_TOKEN: BOB_TOKEN,
        f.CUSTOMER_NAME: "Bob Jones",
        f.CUSTOMER_EMAIL: "bob@example.com",
    })
    ids["alice_profile"] = _create(store, f.CLIENTS_TABLE, {
        f.CLIENT_EMAIL: "alice@example.com",
        f.CLIENT_MEAL: "Lunch",
        f.CLIENT_GOAL_CALORIES: 2000,
        f.CLIENT_GOAL_CARBS: 200,
        f.CLIENT_GOAL_PROTEIN: 150,
        f.CLIENT_GOAL_FAT: 70,
        f.CLIENT_GOAL_FIBER: 30,
        f.CLIENT_NOTES: "No mushrooms",
        f.CLIENT_SNACKS_PER_DAY: 1,
        f.CLIENT_ALLERGIES: [ids["gluten_free"]],
    })

    teriyaki_ingredients = [ids["chicken"], ids["teriyaki"], ids["scallions"], ids["broccoli"], ids["rice"]]
    alice_line = {
        f.ORDER_TOKEN: ALICE_TOKEN,
        f.ORDER_ITEM_NAME: "Teriyaki Chicken Bowl",
        f.ORDER_ITEM_ID: "Alice Smith Lunch 01",
        f.ORDER_DISH_ID: ids["dish_teriyaki"],
        f.ORDER_MEAL: "Lunch",
        f.ORDER_DELIVERY_DATE: LUNCH_DATE,
        f.ORDER_QUANTITY: 1,
        f.ORDER_SUBSCRIPTION_ID: ["recSub001"],
        f.ORDER_EMAIL: "alice@example.com",
        f.ORDER_ORIGINAL_INGREDIENTS: teriyaki_ingredients,
        f.ORDER_FINAL_INGREDIENTS: [],
        f.ORDER_ALLERGIES: [ids["tree_nuts"]],
        f.CALORIES: 550,
        f.CARBS: 60,
        f.PROTEIN: 40,
        f.FAT: 12,
        f.FIBER: 6,
    }
    ids["alice_line_1"] = _create(store, f.ORDERS_TABLE, dict(alice_line, **{f.ORDER_LINE_NUMBER: 1}))
    ids["alice_line_2"] = _create(store, f.ORDERS_TABLE, dict(alice_line, **{f.ORDER_LINE_NUMBER: 2}))

    # A stale line left behind by an earlier removal
    ids["alice_stale"] = _create(store, f.ORDERS_TABLE, {
        f.ORDER_TOKEN: ALICE_TOKEN,
        f.ORDER_ITEM_NAME: "Garden Salad",
        f.ORDER_ITEM_ID: "Alice Smith Lunch 05",
        f.ORDER_DISH_ID: ids["dish_salad"],
        f.ORDER_MEAL: "Lunch",
        f.ORDER_DELIVERY_DATE: LUNCH_DATE,
        f.ORDER_QUANTITY: 0,
        f.ORDER_LINE_NUMBER: 1,
        f.ORDER_ORIGINAL_INGREDIENTS: [ids["broccoli"], ids["carrots"]],
    })

    ids["bob_line"] = _create(store, f.ORDERS_TABLE, {
        f.ORDER_TOKEN: BOB_TOKEN,
        f.ORDER_ITEM_NAME: "Steak & Sweet Potato",
        f.ORDER_ITEM_ID: "Bob Jones Dinner 01",
        f.ORDER_DISH_ID: ids["dish_steak"],
        f.ORDER_MEAL: "Dinner",
        f.ORDER_DELIVERY_DATE: DINNER_DATE,
        f.ORDER_QUANTITY: 1,
        f.ORDER_LINE_NUMBER: 1,
        f.ORDER_ORIGINAL_INGREDIENTS: [ids["steak"], ids["bbq"], ids["carrots"], ids["sweet_potato"]],
    })

    return ids


@pytest.fixture
def standard_sauces(seeded):
    return [seeded["bbq"], seeded["ranch"]]


@pytest.fixture
def service(store, seeded, standard_sauces):
    """PlanService over the seeded store with a pinned clock."""
    return PlanService(
        store,
        IngredientClassifierCache(store),
        VariantCatalogCache(store),
        standard_sauce_ids=standard_sauces,
        clock=fixed_clock,
    )


@pytest.fixture
def client(store, seeded, standard_sauces, monkeypatch):
    """FastAPI TestClient over the seeded in-memory store.

    Sets test admin credentials and disables rate limiting.
    """
    monkeypatch.setattr(config_mod, "ADMIN_USERNAME", TEST_ADMIN_USERNAME)
    monkeypatch.setattr(config_mod, "ADMIN_PASSWORD", TEST_ADMIN_PASSWORD)
    monkeypatch.setattr(config_mod, "STANDARD_SAUCE_IDS", standard_sauces)
    monkeypatch.setattr(limiter, "enabled", False)

    app = create_app(store=store, clock=fixed_clock)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_auth():
    """Returns HTTP Basic Auth tuple for admin endpoints."""
    return (TEST_ADMIN_USERNAME, TEST_ADMIN_PASSWORD)
