from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request
from asset_transfer.services.policy import has_roles


def require_roles(*names: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not has_roles(*names):
                abort(403, description='Missing role')
            return fn(*args, **kwargs)
        return wrapper
    return outer
