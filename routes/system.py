from flask import Blueprint, jsonify, g

from security.privileges import ROLE_PRIVILEGE_DEFAULTS, SCOPE_LABELS, catalog
from security.rbac import require_admin
from utils.audit import log_event

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


@system_bp.get("/roles")
@require_admin
def roles():
    log_event("SYSTEM_ROLES_VIEW", user_id=g.user.id)
    return jsonify(
        privileges=catalog(),
        roles={role: dict(row) for role, row in ROLE_PRIVILEGE_DEFAULTS.items()},
        scopes=SCOPE_LABELS,
    ), 200
