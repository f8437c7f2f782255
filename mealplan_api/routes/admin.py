"""
Admin Routes for the Meal Plan API
==================================

Operator endpoints, protected by HTTP Basic Auth.

Endpoints:
----------
- POST /admin/send-emails: Email every customer their plan link
- POST /admin/caches/clear: Empty the ingredient and variant caches so
  edits made in the base show up without a restart
"""

import logging

from fastapi import APIRouter, Depends, Request

from ..auth import verify_admin_credentials
from ..email_service import send_weekly_plan_emails
from ..schemas.admin import CacheClearResponse, SendEmailsResponse

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/admin", tags=["Admin"])


@admin_router.post("/send-emails", response_model=SendEmailsResponse)
def send_emails(
    request: Request,
    admin: str = Depends(verify_admin_credentials),
) -> SendEmailsResponse:
    """Send this week's plan link to every customer."""
    logger.info("Weekly plan emails triggered by %s", admin)
    result = send_weekly_plan_emails(request.app.state.store)
    return SendEmailsResponse(**result)


@admin_router.post("/caches/clear", response_model=CacheClearResponse)
def clear_caches(
    request: Request,
    admin: str = Depends(verify_admin_credentials),
) -> CacheClearResponse:
    classifier = request.app.state.ingredient_cache
    variants = request.app.state.variant_cache

    response = CacheClearResponse(
        ingredients_cleared=len(classifier),
        variants_were_loaded=variants.is_loaded,
        variants_last_refresh=variants.last_refresh,
    )
    classifier.clear()
    variants.clear()

    logger.info("Reference caches cleared by %s (%d ingredients)", admin, response.ingredients_cleared)
    return response
