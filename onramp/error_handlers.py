import logging
import traceback

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from onramp.errors import OnrampError
from onramp.observability.metrics import record_error

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register all error handlers for the application"""

    @app.errorhandler(OnrampError)
    def handle_onramp_error(error):
        level = logging.ERROR if error.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            f"{error.__class__.__name__}: {error.message}",
            extra={"path": request.path, "status_code": error.status_code, **error.payload},
        )
        record_error(error.error, request.path)

        response = jsonify({**error.to_dict(), "path": request.path})
        response.status_code = error.status_code
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """
        Handles known HTTP errors (404, 405, 429, etc.)
        """
        logger.warning(f"HTTP {e.code}: {e.name} - Path: {request.path}")
        return jsonify({
            "error": e.name,
            "message": e.description,
            "path": request.path,
        }), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        """
        Handles all unexpected server errors.
        Internal detail is only returned when EXPOSE_ERROR_DETAILS is set.
        """
        logger.error(
            f"Unhandled exception: {e}",
            extra={"path": request.path, "method": request.method, "traceback": traceback.format_exc()},
        )
        record_error("unhandled", request.path)

        body = {
            "error": "Internal Server Error",
            "message": "Something went wrong. Please try again later.",
            "path": request.path,
        }
        if app.config.get("EXPOSE_ERROR_DETAILS"):
            body["detail"] = f"{e.__class__.__name__}: {e}"
        return jsonify(body), 500
