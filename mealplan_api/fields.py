"""
Table and field names in the record store.

The meal plan base is maintained by the kitchen team in Airtable, so names
follow their spelling (spaces, slashes and all). Keep every literal here so a
renamed column is a one-line change.
"""

# =============================================================================
# Tables
# =============================================================================

CUSTOMERS_TABLE = "Meal URL"
CLIENTS_TABLE = "Client"
ORDERS_TABLE = "Open Orders"
INGREDIENTS_TABLE = "Ingredients"
VARIANTS_TABLE = "Variants"
MENU_TABLE = "Products/Weekly Menu"
ALLERGIES_TABLE = "Allergies Diet"


# =============================================================================
# Meal URL (one record per customer link)
# =============================================================================

CUSTOMER_TOKEN = "Unique ID"
CUSTOMER_NAME = "Name"
CUSTOMER_EMAIL = "Email"
CUSTOMER_CLIENT_IDENTIFIER = "Client_Nutrition_Identifier"


# =============================================================================
# Client (nutrition profile, one record per customer and meal type)
# =============================================================================

CLIENT_EMAIL = "TypyForm_Email"
CLIENT_MEAL = "Meal"
CLIENT_GOAL_CALORIES = "goal_calories"
CLIENT_GOAL_CARBS = "goal_carbs(g)"
CLIENT_GOAL_PROTEIN = "goal_protein(g)"
CLIENT_GOAL_FAT = "goal_fat(g)"
CLIENT_GOAL_FIBER = "goal_fiber(g)"
CLIENT_NOTES = "Notes"
CLIENT_SNACKS_PER_DAY = "# of snacks per day"
CLIENT_ALLERGIES = "Allergies_Diet"


# =============================================================================
# Open Orders (one record per reserved serving)
# =============================================================================

ORDER_TOKEN = "To_Match_Client_Nutrition"
ORDER_ITEM_NAME = "Airtable ItemName"
ORDER_ITEM_ID = "Item ID"
ORDER_DISH_ID = "Dish ID"
ORDER_MEAL = "Meal"
ORDER_DELIVERY_DATE = "Delivery Date"
ORDER_QUANTITY = "Quantity"
ORDER_LINE_NUMBER = "Line Number"
ORDER_SUBSCRIPTION_ID = "Order/ Subscription ID"
ORDER_EMAIL = "Email"
ORDER_ORIGINAL_INGREDIENTS = "Original Ingredients"
ORDER_FINAL_INGREDIENTS = "Final Ingredients"
ORDER_INGREDIENTS_VERSION = "Ingredients Version"
ORDER_AUDIT_LOG = "Customization Log"
ORDER_NUTRITION_NOTES = "Nutrition Notes"
ORDER_ALLERGIES = "Allergies_Diet"

# Nutrition estimates share names between Open Orders and the weekly menu
CALORIES = "Calories"
CARBS = "Carbs"
PROTEIN = "Protein"
FAT = "Fat"
FIBER = "Fiber"

NUTRITION_FIELDS = {
    "calories": CALORIES,
    "carbs": CARBS,
    "protein": PROTEIN,
    "fat": FAT,
    "fiber": FIBER,
}


# =============================================================================
# Ingredients
# =============================================================================

# Tried in order; older rows only have the USDA name filled in
INGREDIENT_NAME_FIELDS = ("Ingredient Name", "Name", "USDA Name")
INGREDIENT_COMPONENT = "Component"


# =============================================================================
# Variants (substitution groups)
# =============================================================================

VARIANT_TYPE = "Variant Type"
VARIANT_NAME = "Variant Name"
VARIANT_APPLICABLE_TO = "Applicable to"
VARIANT_INGREDIENTS = "Ingredient"
VARIANT_PRICE = "Price"
VARIANT_AVAILABILITY = "Availability"


# =============================================================================
# Products/Weekly Menu
# =============================================================================

MENU_TITLE = "Product Title"
MENU_MEAL = "Meal"
MENU_INGREDIENTS = "Ingredients"
MENU_ACTIVE = "Active"
MENU_IMAGE_FIELDS = ("Images (view only)", "Images", "Image")


# =============================================================================
# Allergies Diet (allergy and diet restriction labels)
# =============================================================================

ALLERGY_NAME = "Allergy to/ (As) Diet Type"
