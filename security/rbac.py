from functools import wraps
from flask import g, jsonify, current_app

from security.privileges import Scope
from utils.audit import log_event
from utils.troops import any_troop_scope_for, troop_scope_for

def _deny(code, troop_id=None):
    current_app.logger.warning(
        "Privilege denied: user=%s privilege=%s troop=%s", g.user.id, code, troop_id
    )
    log_event(
        "PRIVILEGE_DENIED",
        user_id=g.user.id,
        resource_type="privileges",
        resource_id=code,
        troop_id=troop_id,
    )
    return jsonify(error="Insufficient privilege", privilege=code), 403

def require_admin(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = getattr(g, "user", None)
        if user is None:
            return jsonify(error="Authentication required"), 401
        if not user.is_admin:
            return _deny("admin")
        return fn(*args, **kwargs)
    return wrapper

def require_privilege(code: str):
    """
    Usage: @require_privilege("manage_members") on a route taking <troop_id>.

    Resolves the caller's scope for `code` in that troop and stores it on
    g.privilege_scope for the view to filter its query with.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            troop_id = kwargs.get("troop_id")
            scope = troop_scope_for(user, troop_id, code) if troop_id is not None else Scope.NONE
            if scope is Scope.NONE:
                return _deny(code, troop_id)

            g.privilege_scope = scope
            return fn(*args, **kwargs)
        return wrapper
    return decorator

def require_privilege_any_troop(code: str):
    """
    Like require_privilege, for routes not scoped to one troop: the caller's
    broadest scope for `code` across all of their troops.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            scope = any_troop_scope_for(user, code)
            if scope is Scope.NONE:
                return _deny(code)

            g.privilege_scope = scope
            return fn(*args, **kwargs)
        return wrapper
    return decorator
