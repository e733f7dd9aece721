from functools import wraps
from flask import abort, current_app
from flask_jwt_extended import verify_jwt_in_request
from role_composer.services.policy import has_permissions, current_user_id
from role_composer.services.sessions import get_sessions


def require_permissions(*codes: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not has_permissions(*codes):
                current_app.logger.info('User %s denied %s: missing %s', current_user_id(), fn.__name__, codes)
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer


def editor_session(fn):
    """Resolve the `session_id` path parameter to the caller's open EditorSession.

    Sessions of other users are reported as missing. Must sit below require_permissions.
    """
    @wraps(fn)
    def wrapper(session_id: str, *args, **kwargs):
        session = get_sessions().get(session_id, owner=current_user_id())
        if session is None:
            abort(404, description='Editing session not found')
        return fn(session, *args, **kwargs)
    return wrapper
