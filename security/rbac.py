from functools import wraps
from flask import g, jsonify

ADMIN = "admin"
CUSTOMER = "customer"


def current_role():
    if getattr(g, "user_id", None) is None:
        return None
    return getattr(g, "role", None)


def has_role(role_name: str) -> bool:
    return current_role() == role_name


def can_access_booking(customer_id: str) -> bool:
    """Customers see their own bookings; admins see all."""
    if current_role() is None:
        return False
    return customer_id == g.user_id or has_role(ADMIN)


def require_roles(*role_names: str):
    """
    Usage: @require_roles("admin")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = current_role()
            if role is None:
                return jsonify(error="Authentication required"), 401
            if role not in role_names:
                return jsonify(error="Forbidden"), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
