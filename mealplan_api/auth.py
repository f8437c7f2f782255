"""
Authentication for the admin endpoints.

Customer plan endpoints are addressed by the opaque token in the emailed
link and need no further authentication. The admin endpoints (sending the
weekly emails, clearing the reference caches) use HTTP Basic Auth with
credentials from the environment.

Behaviour:
----------
- ADMIN_PASSWORD unset: admin endpoints answer 503 instead of opening up.
- Wrong credentials: 401 with a WWW-Authenticate header so browsers prompt.
- Credentials are compared with ``secrets.compare_digest``.

Usage:
------
    from mealplan_api.auth import verify_admin_credentials

    @router.post("/admin/caches/clear")
    def clear_caches(admin: str = Depends(verify_admin_credentials)):
        ...
"""

import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from . import config

security = HTTPBasic(realm="Meal Plan Admin")


def verify_admin_credentials(
    credentials: HTTPBasicCredentials = Depends(security),
) -> str:
    """
    Verify HTTP Basic Auth credentials for admin endpoints.

    Returns:
        str: The authenticated username

    Raises:
        HTTPException (503): ADMIN_PASSWORD is not configured
        HTTPException (401): Credentials do not match
    """
    if not config.ADMIN_PASSWORD:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured. Set ADMIN_PASSWORD environment variable.",
        )

    username_correct = secrets.compare_digest(
        credentials.username.encode("utf-8"),
        config.ADMIN_USERNAME.encode("utf-8"),
    )
    password_correct = secrets.compare_digest(
        credentials.password.encode("utf-8"),
        config.ADMIN_PASSWORD.encode("utf-8"),
    )

    if not (username_correct and password_correct):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username
