from datetime import datetime
from flask import Blueprint, request, jsonify, g, current_app

from models import db
from models.user import User
from models.privilege_override import PrivilegeOverride
from security.privileges import (
    SCOPE_LABELS,
    VALID_PRIVILEGE_CODES,
    VALID_SCOPES,
    build_effective_privileges,
    catalog,
    scope_for,
)
from security.rbac import require_privilege, require_privilege_any_troop
from utils.audit import log_event
from utils.auth_context import login_required
from utils.troops import (
    any_troop_scopes_for,
    get_active_membership,
    get_overrides,
    get_troop,
    troop_scopes_for,
)


privileges_bp = Blueprint("privileges", __name__, url_prefix="/api")


def _member_or_404(troop_id, user_id):
    membership = get_active_membership(troop_id, user_id)
    if membership is None:
        return None, (jsonify(error="Member not found"), 404)
    return membership, None


def _member_payload(membership):
    user = db.session.get(User, membership.user_id)
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "troop_role": membership.role,
    }


@privileges_bp.get("/privileges/catalog")
@require_privilege_any_troop("manage_privileges")
def privilege_catalog():
    return jsonify(privileges=catalog(), scopes=SCOPE_LABELS), 200


@privileges_bp.get("/privileges/me")
@login_required
def my_privileges_any_troop():
    scopes = any_troop_scopes_for(g.user)
    return jsonify(privileges={code: scope.value for code, scope in scopes.items()}), 200


@privileges_bp.get("/troop/<int:troop_id>/privileges/me")
@login_required
def my_privileges(troop_id):
    if get_troop(troop_id) is None:
        return jsonify(error="Troop not found"), 404
    scopes = troop_scopes_for(g.user, troop_id)
    return jsonify(
        troop_id=troop_id,
        privileges={code: scope.value for code, scope in scopes.items()},
    ), 200


@privileges_bp.get("/troop/<int:troop_id>/members/<int:user_id>/privileges")
@require_privilege("manage_privileges")
def get_member_privileges(troop_id, user_id):
    membership, error = _member_or_404(troop_id, user_id)
    if error:
        return error

    return jsonify(
        member=_member_payload(membership),
        privileges=build_effective_privileges(membership.role, get_overrides(troop_id, user_id)),
    ), 200


@privileges_bp.put("/troop/<int:troop_id>/members/<int:user_id>/privileges")
@require_privilege("manage_privileges")
def update_member_privileges(troop_id, user_id):
    data = request.get_json(silent=True) or {}
    overrides = data.get("overrides")

    if not isinstance(overrides, list):
        return jsonify(error="overrides must be an array"), 400

    if user_id == g.user.id:
        return jsonify(error="Cannot modify your own privileges"), 403

    if get_troop(troop_id) is None:
        return jsonify(error="Troop not found"), 404

    membership, error = _member_or_404(troop_id, user_id)
    if error:
        return error

    for o in overrides:
        if not isinstance(o, dict) or o.get("code") not in VALID_PRIVILEGE_CODES:
            code = o.get("code") if isinstance(o, dict) else o
            return jsonify(error=f"Invalid privilege code: {code}"), 400
        if o.get("scope") not in VALID_SCOPES:
            return jsonify(error=f"Invalid scope: {o.get('scope')}"), 400

    # a code named twice: the last entry wins
    requested = {o["code"]: o["scope"] for o in overrides}

    existing = {
        row.privilege_code: row
        for row in PrivilegeOverride.query.filter_by(troop_id=troop_id, user_id=user_id).all()
    }
    now = datetime.utcnow()
    for code, scope in requested.items():
        row = existing.get(code)
        if scope == scope_for(membership.role, code).value:
            # matching the role default means no override
            if row is not None:
                db.session.delete(row)
        elif row is not None:
            row.scope = scope
            row.granted_by = g.user.id
            row.updated_at = now
        else:
            db.session.add(PrivilegeOverride(
                troop_id=troop_id,
                user_id=user_id,
                privilege_code=code,
                scope=scope,
                granted_by=g.user.id,
            ))
    db.session.commit()

    log_event(
        "PRIVILEGES_UPDATE",
        user_id=g.user.id,
        resource_type="privileges",
        resource_id=user_id,
        troop_id=troop_id,
        metadata={"override_count": len(requested)},
    )
    current_app.logger.info(
        "Privileges updated: troop=%s member=%s by=%s", troop_id, user_id, g.user.id
    )

    return jsonify(
        member=_member_payload(membership),
        privileges=build_effective_privileges(membership.role, get_overrides(troop_id, user_id)),
    ), 200


@privileges_bp.delete("/troop/<int:troop_id>/members/<int:user_id>/privileges")
@require_privilege("manage_privileges")
def reset_member_privileges(troop_id, user_id):
    removed = (
        PrivilegeOverride.query
        .filter_by(troop_id=troop_id, user_id=user_id)
        .delete(synchronize_session=False)
    )
    db.session.commit()

    log_event(
        "PRIVILEGES_RESET",
        user_id=g.user.id,
        resource_type="privileges",
        resource_id=user_id,
        troop_id=troop_id,
        metadata={"removed": removed},
    )
    return jsonify(success=True, removed=removed), 200
