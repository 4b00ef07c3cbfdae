"""
Development entry point for the survey intake API.

Run with:
    python run_app.py

PORT, ADMIN_KEY, DB_PATH, LOG_PATH and CORS_ORIGIN are read from the
environment or a .env file in the project root.
"""

from __future__ import annotations

from survey_intake.app import create_app
from survey_intake.config import load_settings


def main() -> None:
    """Create the Flask application and run the development server."""
    settings = load_settings()
    app = create_app(testing=False, settings=settings)
    app.run(
        host="0.0.0.0",
        port=settings.port,
        debug=False,
        use_reloader=False,
    )


if __name__ == "__main__":
    main()
