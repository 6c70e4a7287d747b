"""Middleware for authentication context and role checks."""
from functools import wraps
from flask import session, g, current_app
from dealerdesk.database import get_session
from dealerdesk.exceptions import UnauthorizedError
from dealerdesk.models import AppUser
from dealerdesk.services.pricing_service import parse_role


def load_user():
    """
    Load current user into g (Flask's per-request global).

    Called before each request. Sets g.user and g.user_role (a Role or None)
    when a logged-in, active user id is stored in the session.
    """
    g.user = None
    g.user_role = None

    try:
        user_id = session.get('user_id')
        if user_id:
            db_session = get_session()
            if not db_session:
                return

            user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
            if user:
                g.user = user
                g.user_role = parse_role(user.role)
            else:
                session.pop('user_id', None)
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error in load_user: {e}")


def require_login(f):
    """Decorator: Require user to be logged in (401 JSON otherwise)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError('Authentication required', status_code=401)
        return f(*args, **kwargs)
    return decorated_function


def require_role(*roles):
    """
    Decorator: Require one of ``roles`` (Role members).

    Must be used AFTER require_login.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if g.get('user_role') not in roles:
                raise UnauthorizedError('You do not have permission to perform this action')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
