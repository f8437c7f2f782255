"""
ASGI entry point.

    uvicorn mealplan_api.main:app --reload
"""

from .app_factory import create_app
from .logging_config import setup_logging

# Configure logging at module load time
setup_logging()

app = create_app()
