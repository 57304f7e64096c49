from flask import jsonify
from werkzeug.exceptions import HTTPException, NotFound, BadRequest, Conflict, Unauthorized


class NotFoundError(NotFound):
    """A plan, user or subscription does not exist (or is not owned by the caller)."""


class BadRequestError(BadRequest):
    """The request is well-formed but not allowed in the current state."""


class ConflictError(Conflict):
    """The request would create a second active subscription for the same plan."""


def error_payload(exc):
    """Builds the JSON error body for an HTTPException."""
    return {
        'success': False,
        'message': exc.description,
        'error': exc.name,
        'statusCode': exc.code,
    }


def register_error_handlers(app):
    """
    Renders every HTTP error raised inside the app as JSON instead of Werkzeug's HTML page.
    Covers the typed errors above as well as aborts from Flask itself (404 routes, 405 methods).
    """
    @app.errorhandler(HTTPException)
    def handle_http_exception(exc):
        if exc.code >= 500:
            app.logger.error(f"HTTP {exc.code} raised: {exc.description}")
        return jsonify(error_payload(exc)), exc.code


def unauthorized_response():
    """Flask-Login unauthorized handler: a JSON 401 rather than a redirect to a login page."""
    exc = Unauthorized('Authentication required')
    return jsonify(error_payload(exc)), exc.code
