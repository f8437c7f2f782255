"""Run the API with uvicorn: ``python -m mealplan_api``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "mealplan_api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3001")),
        reload=os.getenv("RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
