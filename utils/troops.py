from models import db
from models.troop import Troop, TroopMember
from models.privilege_override import PrivilegeOverride
from security.privileges import (
    Scope,
    apply_overrides,
    broadest_scope,
    scope_for,
    VALID_PRIVILEGE_CODES,
)


def get_troop(troop_id):
    return db.session.get(Troop, troop_id)


def get_active_membership(troop_id, user_id):
    return TroopMember.query.filter_by(troop_id=troop_id, user_id=user_id, status="active").first()


def get_overrides(troop_id, user_id):
    rows = PrivilegeOverride.query.filter_by(troop_id=troop_id, user_id=user_id).all()
    return [(r.privilege_code, r.scope) for r in rows]


def troop_scopes_for(user, troop_id) -> dict:
    """
    Effective scope per capability for `user` inside one troop.

    The troop role (with this troop's overrides applied) is merged with the
    user's base role, broadest grant winning per capability. The base role only
    counts inside troops the user actively belongs to, except `admin`, which
    applies everywhere. Non-members get Scope.NONE across the board.
    """
    membership = get_active_membership(troop_id, user.id)
    if membership is None:
        if user.is_admin:
            return {code: scope_for(user.role, code) for code in VALID_PRIVILEGE_CODES}
        return {code: Scope.NONE for code in VALID_PRIVILEGE_CODES}

    troop_scopes = apply_overrides(membership.role, get_overrides(troop_id, user.id))
    return {
        code: broadest_scope((troop_scopes[code], scope_for(user.role, code)))
        for code in VALID_PRIVILEGE_CODES
    }


def troop_scope_for(user, troop_id, code) -> Scope:
    if code not in VALID_PRIVILEGE_CODES:
        return Scope.NONE
    return troop_scopes_for(user, troop_id)[code]


def any_troop_scopes_for(user) -> dict:
    """
    Broadest scope per capability across every troop the user actively
    belongs to, for routes not tied to one troop (own sales, donations).
    The `admin` base role counts even without a membership.
    """
    memberships = TroopMember.query.filter_by(user_id=user.id, status="active").all()
    per_troop = [troop_scopes_for(user, m.troop_id) for m in memberships]
    return {
        code: broadest_scope(
            [scopes[code] for scopes in per_troop]
            + ([scope_for(user.role, code)] if user.is_admin else [])
        )
        for code in VALID_PRIVILEGE_CODES
    }


def any_troop_scope_for(user, code) -> Scope:
    if code not in VALID_PRIVILEGE_CODES:
        return Scope.NONE
    return any_troop_scopes_for(user)[code]
