from functools import wraps
from flask import g, jsonify, request, current_app

from security.rbac import CUSTOMER

def load_current_user():
    # Identity is established by the upstream auth gateway and forwarded as headers
    user_header = current_app.config.get("AUTH_USER_HEADER", "X-User-Id")
    role_header = current_app.config.get("AUTH_ROLE_HEADER", "X-User-Role")

    user_id = (request.headers.get(user_header) or "").strip()
    if not user_id:
        g.user_id = None
        g.role = None
        return
    g.user_id = user_id[:64]
    g.role = (request.headers.get(role_header) or CUSTOMER).strip().lower()

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user_id", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
