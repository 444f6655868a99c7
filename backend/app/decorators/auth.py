from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request
from app.constants.pdr import Role
from app.services.policy import current_role


def require_role(*roles: Role):
    """Verify the JWT; when roles are given the token's role must be one of them."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = current_role()
            if roles and role not in roles:
                abort(403, description=f"Role '{role.value}' is not allowed here")
            return fn(*args, **kwargs)
        return wrapper
    return outer
