"""
Flask web application for the survey intake backend.

Exposes the JSON API used by the survey forms and the admin tools:

    GET  /api/ping        liveness check
    POST /api/submit      store one patient or community submission
    GET  /api/responses   list submissions (admin)
    GET  /api/export      download submissions as CSV (admin)
    POST /api/reset       delete every submission (admin)
"""

from __future__ import annotations

import os
from dataclasses import replace
from typing import Any, Tuple

from flask import Flask, Response, current_app, g, jsonify, make_response, request

from survey_intake.auth import AUTHORIZER_EXTENSION, Authorizer, SharedSecretAuthorizer, require_admin
from survey_intake.config import Settings, load_settings
from survey_intake.database import DatabaseManager
from survey_intake.errors import SurveyIntakeError, ValidationError
from survey_intake.filters import ResponseQuery
from survey_intake.logging_utils import configure_logger, get_logger
from survey_intake.services import SurveyService

CORS_ALLOWED_METHODS = "GET, POST, OPTIONS"
CORS_ALLOWED_HEADERS = "Content-Type, x-admin-key"


def get_db_manager() -> DatabaseManager:
    """
    Return a request-scoped DatabaseManager stored on flask.g.

    The connection is opened lazily on first use and closed when the app
    context tears down.
    """
    manager: DatabaseManager | None = g.get("db_manager")
    if manager is not None:
        return manager

    manager = DatabaseManager(current_app.config["DB_PATH"])
    manager.connect()
    g.db_manager = manager
    return manager


def get_service() -> SurveyService:
    """Return a request-scoped SurveyService bound to the DB manager."""
    service: SurveyService | None = g.get("survey_service")
    if service is None:
        service = SurveyService(get_db_manager())
        g.survey_service = service
    return service


def init_database(db_path: str) -> None:
    """Create the database file and both tables if missing."""
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    manager = DatabaseManager(db_path)
    manager.connect()
    try:
        manager.create_tables()
    finally:
        manager.close()


def create_app(
    testing: bool = False,
    db_path: str | None = None,
    log_path: str | None = None,
    admin_key: str | None = None,
    settings: Settings | None = None,
    authorizer: Authorizer | None = None,
) -> Flask:
    """
    Application factory for the Flask web app.

    Parameters
    ----------
    testing : bool
        If True, configure the app for testing.
    db_path : str | None
        SQLite file for this app instance. Overrides settings.db_path.
    log_path : str | None
        Log file for this app instance. Overrides settings.log_path.
    admin_key : str | None
        Shared admin secret. Overrides settings.admin_key.
    settings : Settings | None
        Base configuration; loaded from the environment when omitted.
    authorizer : Authorizer | None
        Admin check to install instead of the shared-secret one.
    """
    if settings is None:
        settings = load_settings()

    settings = replace(
        settings,
        db_path=db_path or settings.db_path,
        log_path=log_path or settings.log_path,
        admin_key=admin_key or settings.admin_key,
    )
    db_path = settings.db_path
    log_path = settings.log_path

    app = Flask(__name__)
    app.config["TESTING"] = testing
    app.config["DB_PATH"] = db_path
    app.config["LOG_PATH"] = log_path
    app.config["CORS_ORIGIN"] = settings.cors_origin
    app.extensions[AUTHORIZER_EXTENSION] = authorizer or SharedSecretAuthorizer(settings.admin_key)

    logger = configure_logger(log_path)
    if authorizer is None and settings.uses_default_admin_key:
        logger.warning("ADMIN_KEY is not set; using the insecure default admin key")

    init_database(db_path)
    logger.info("app created db=%s", db_path)

    @app.errorhandler(SurveyIntakeError)
    def handle_survey_error(exc: SurveyIntakeError) -> Tuple[Response, int]:
        """Render expected failures as {"error": message}."""
        return jsonify({"error": exc.message}), exc.status_code

    @app.errorhandler(404)
    def handle_not_found(_: Exception) -> Tuple[Response, int]:
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(_: Exception) -> Tuple[Response, int]:
        return jsonify({"error": "method not allowed"}), 405

    @app.errorhandler(500)
    def handle_server_error(exc: Exception) -> Tuple[Response, int]:
        """Log unexpected failures and hide their details from the caller."""
        original = getattr(exc, "original_exception", None) or exc
        get_logger().error("unhandled_error path=%s", request.path, exc_info=original)
        return jsonify({"error": "server error"}), 500

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        """Allow the survey forms to call the API from another origin."""
        response.headers["Access-Control-Allow-Origin"] = current_app.config["CORS_ORIGIN"]
        if request.method == "OPTIONS":
            response.headers["Access-Control-Allow-Methods"] = CORS_ALLOWED_METHODS
            response.headers["Access-Control-Allow-Headers"] = CORS_ALLOWED_HEADERS
        return response

    @app.route("/api/ping", methods=["GET"])
    def ping() -> Response:
        return jsonify({"ok": True})

    @app.route("/api/submit", methods=["POST"])
    def submit() -> Response:
        """Store one submission: body {survey, payload}."""
        body: Any = request.get_json(silent=True)
        if not isinstance(body, dict) or not body.get("survey") or body.get("payload") is None:
            raise ValidationError("missing data")
        response_id = get_service().submit(body["survey"], body["payload"])
        return jsonify({"ok": True, "id": response_id})

    @app.route("/api/responses", methods=["GET"])
    @require_admin
    def list_responses() -> Response:
        """List rows for ?survey=, optionally filtered by ?month=YYYY-MM."""
        query = ResponseQuery.from_request_args(request.args.to_dict(flat=True))
        rows = get_service().list_responses(query)
        return jsonify({"ok": True, "count": len(rows), "rows": rows})

    @app.route("/api/export", methods=["GET"])
    @require_admin
    def export_responses() -> Response:
        """Download the same rows as /api/responses as a CSV file."""
        query = ResponseQuery.from_request_args(request.args.to_dict(flat=True))
        csv_data = get_service().export_csv(query)
        response = make_response(csv_data)
        response.headers["Content-Type"] = "text/csv; charset=utf-8"
        response.headers.set("Content-Disposition", "attachment", filename=query.export_filename)
        return response

    @app.route("/api/reset", methods=["POST"])
    @require_admin
    def reset() -> Response:
        """Delete every row from both survey tables."""
        get_service().reset()
        return jsonify({"ok": True})

    @app.teardown_appcontext
    def close_db_manager(_: BaseException | None) -> None:
        """Close any request-scoped database managers."""
        manager: DatabaseManager | None = g.pop("db_manager", None)
        if manager is not None:
            manager.close()
        g.pop("survey_service", None)

    return app
