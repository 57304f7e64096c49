from functools import wraps
from flask import current_app
from flask_login import current_user
from werkzeug.exceptions import Forbidden


def admin_required(f):
    """
    Decorator to ensure the current user is an admin.
    Unauthenticated requests go through Flask-Login's unauthorized handler (JSON 401);
    authenticated non-admins get a 403.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()

        if not current_user.is_admin:
            current_app.logger.warning(f"User {current_user.id} (type '{current_user.type}') denied access to admin endpoint {f.__name__}.")
            raise Forbidden('Admin access required')

        return f(*args, **kwargs)
    return decorated_function
