"""
Configuration Module for the Meal Plan API
==========================================

This module centralizes all configuration settings, environment variables, and
constants used throughout the meal plan service. Values are read once at import
time from the process environment (a local ``.env`` file is loaded first via
python-dotenv).

Configuration Categories:
-------------------------
- **Record Store**: Which backend holds orders, ingredients, variants and the
  weekly menu (Airtable in production, a SQLAlchemy database for local
  development and tests).

- **Customization Rules**: Standard sauce choices, batch sizes for ingredient
  lookups, and the serving cap per dish.

- **Rate Limiting**: Throttling for the per-customer plan endpoints.

- **CORS / Admin**: Allowed origins for the plan viewer and the credentials
  protecting the admin endpoints.

Environment Variables:
----------------------
- RECORD_STORE_BACKEND: "airtable" or "sql" (default: "sql")
- AIRTABLE_API_KEY (or AIRTABLE_KEY): Airtable personal access token
- AIRTABLE_BASE_ID: Airtable base holding the meal plan tables
- DATABASE_URL: SQLAlchemy URL for the "sql" backend
- INGREDIENT_BATCH_SIZE: Ingredient ids per lookup round trip (default: 50)
- STANDARD_SAUCE_IDS: Comma-separated ingredient record ids always offered as sauces
- MAX_SERVINGS_PER_DISH: Upper bound for a requested quantity (default: 20)
- REQUIRE_INGREDIENTS_VERSION: Reject edits without expectedVersion (default: "false")
- RATE_LIMIT_PLAN: Rate limit for plan endpoints (default: "60 per minute")
- RATE_LIMIT_ENABLED: Enable/disable rate limiting (default: "true")
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")
- ADMIN_USERNAME / ADMIN_PASSWORD: HTTP Basic credentials for /admin endpoints
- PLAN_URL_TEMPLATE: Link sent to customers, "{token}" is substituted

Usage:
------
    from mealplan_api import config

    if config.RECORD_STORE_BACKEND == "airtable":
        ...
"""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_list(name: str) -> List[str]:
    return [part.strip() for part in os.getenv(name, "").split(",") if part.strip()]


# =============================================================================
# Record Store Configuration
# =============================================================================
# The record store is the system of record for customers, order lines,
# ingredients, variants and the weekly menu.

RECORD_STORE_BACKEND: str = os.getenv("RECORD_STORE_BACKEND", "sql").strip().lower()

AIRTABLE_API_KEY: str = os.getenv("AIRTABLE_API_KEY") or os.getenv("AIRTABLE_KEY", "")
AIRTABLE_BASE_ID: str = os.getenv("AIRTABLE_BASE_ID", "")
AIRTABLE_API_URL: str = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0")

# Per-call HTTP timeout. Kept at or above the overall request deadline.
AIRTABLE_TIMEOUT_SECONDS: int = int(os.getenv("AIRTABLE_TIMEOUT_SECONDS", "30"))

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./mealplan.db")


# =============================================================================
# Customization Rules
# =============================================================================

# Ingredient ids resolved per round trip. Airtable formulas get slow and hit
# URL length limits well before a few hundred OR() terms.
INGREDIENT_BATCH_SIZE: int = int(os.getenv("INGREDIENT_BATCH_SIZE", "50"))

# Sauces offered on every dish regardless of what the dish shipped with
STANDARD_SAUCE_IDS: List[str] = _env_list("STANDARD_SAUCE_IDS")

# Variant type whose members are offered as starch swaps
STARCH_VARIANT_TYPE: str = os.getenv("STARCH_VARIANT_TYPE", "Starch Substitution")

MAX_SERVINGS_PER_DISH: int = int(os.getenv("MAX_SERVINGS_PER_DISH", "20"))

REQUIRE_INGREDIENTS_VERSION: bool = _env_bool("REQUIRE_INGREDIENTS_VERSION", "false")

# Fallback nutrition estimates for lines and dishes missing them
DEFAULT_NUTRITION = {
    "calories": 150,
    "carbs": 15,
    "protein": 5,
    "fat": 8,
    "fiber": 3,
}

# Label of the single group returned to customers without any order lines
PLACEHOLDER_DELIVERY_LABEL: str = os.getenv("PLACEHOLDER_DELIVERY_LABEL", "Upcoming delivery")


# =============================================================================
# Rate Limiting Configuration
# =============================================================================
# Uses slowapi with in-memory storage (use Redis for multi-worker prod).

RATE_LIMIT_PLAN: str = os.getenv("RATE_LIMIT_PLAN", "60 per minute")
RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "true")


def get_rate_limit_plan() -> str:
    """
    Return the current plan endpoint rate limit.

    Allows tests to override the limit without touching the module constant.
    """
    return RATE_LIMIT_PLAN


# =============================================================================
# CORS Configuration
# =============================================================================
# Format: comma-separated list of origins, e.g. "https://plans.example.com"
# Default "*" allows all origins (suitable for development only)

CORS_ORIGINS: List[str] = _env_list("CORS_ORIGINS") or ["*"]


# =============================================================================
# Admin Authentication Configuration
# =============================================================================
# ADMIN_PASSWORD must be set for the admin endpoints to respond at all.

ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "")


# =============================================================================
# Customer Links
# =============================================================================

PLAN_URL_TEMPLATE: str = os.getenv(
    "PLAN_URL_TEMPLATE", "http://localhost:3000/meal-plan?customer={token}"
)


def build_plan_url(token: str) -> str:
    """Return the customer-facing plan editor URL for a token."""
    return PLAN_URL_TEMPLATE.format(token=token)
