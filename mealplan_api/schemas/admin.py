"""
Admin Schemas for the Meal Plan API
===================================

Response models for the admin endpoints (HTTP Basic Auth):

- POST /admin/send-emails: SendEmailsResponse
- POST /admin/caches/clear: CacheClearResponse
- GET /health: HealthResponse
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SendEmailsResponse(BaseModel):
    """Outcome of the weekly plan link run."""
    status: str
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    mock: bool = False


class CacheClearResponse(BaseModel):
    """
    Sizes of the reference caches before they were emptied.

    Attributes:
        ingredients_cleared: Ingredient entries dropped
        variants_were_loaded: Whether the variant catalog had been loaded
        variants_last_refresh: When the variant catalog was last loaded
    """
    status: str = "cleared"
    ingredients_cleared: int = 0
    variants_were_loaded: bool = False
    variants_last_refresh: Optional[datetime] = None


class HealthResponse(BaseModel):
    status: str
    store_backend: str
