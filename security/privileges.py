"""
Role -> capability -> scope defaults for troop members.

Scopes are ordered broadest to narrowest: T (Troop), D (Den/Patrol),
H (Household), S (Self), none. Lookups never raise: an unknown role or
capability resolves to Scope.NONE.
"""
from collections import namedtuple
from enum import Enum
from types import MappingProxyType


class Scope(str, Enum):
    TROOP = "T"
    DEN = "D"
    HOUSEHOLD = "H"
    SELF = "S"
    NONE = "none"

    @property
    def breadth(self) -> int:
        return _BREADTH[self]


SCOPE_ORDER = [Scope.TROOP, Scope.DEN, Scope.HOUSEHOLD, Scope.SELF, Scope.NONE]
_BREADTH = {scope: len(SCOPE_ORDER) - i for i, scope in enumerate(SCOPE_ORDER)}

SCOPE_LABELS = {
    "T": "Troop",
    "D": "Den/Patrol",
    "H": "Household",
    "S": "Self",
    "none": "None",
}

VALID_SCOPES = [s.value for s in SCOPE_ORDER]


class PrivilegeMatrixError(ValueError):
    pass


Capability = namedtuple("Capability", ["code", "name", "category"])

_MEMBERSHIP = "Troop & Member Management"
_ADVANCEMENT = "Scout Profiles & Advancement"
_CALENDAR = "Calendar & Events"
_FUNDRAISING = "Fundraising & Sales"
_DONATIONS = "Donations"
_GOALS = "Troop Goals & Reporting"
_DATA = "Data & Settings"

PRIVILEGE_DEFINITIONS = (
    Capability("view_roster", "View troop roster", _MEMBERSHIP),
    Capability("manage_members", "Manage troop members", _MEMBERSHIP),
    Capability("manage_troop_settings", "Manage troop settings", _MEMBERSHIP),
    Capability("send_invitations", "Send invitations", _MEMBERSHIP),
    Capability("import_roster", "Import roster", _MEMBERSHIP),
    Capability("manage_member_roles", "Manage member roles", _MEMBERSHIP),
    Capability("manage_privileges", "Manage privileges", _MEMBERSHIP),
    Capability("view_scout_profiles", "View scout profiles", _ADVANCEMENT),
    Capability("edit_scout_level", "Edit scout level", _ADVANCEMENT),
    Capability("edit_scout_status", "Edit scout status", _ADVANCEMENT),
    Capability("award_badges", "Award badges", _ADVANCEMENT),
    Capability("view_badge_progress", "View badge progress", _ADVANCEMENT),
    Capability("edit_personal_info", "Edit personal info", _ADVANCEMENT),
    Capability("view_events", "View events", _CALENDAR),
    Capability("manage_events", "Manage events", _CALENDAR),
    Capability("export_calendar", "Export calendar", _CALENDAR),
    Capability("view_sales", "View sales data", _FUNDRAISING),
    Capability("record_sales", "Record sales", _FUNDRAISING),
    Capability("manage_fundraisers", "Manage fundraisers", _FUNDRAISING),
    Capability("view_troop_sales", "View troop sales", _FUNDRAISING),
    Capability("view_financials", "View financial accounts", _FUNDRAISING),
    Capability("manage_financials", "Manage financial accounts", _FUNDRAISING),
    Capability("view_donations", "View donations", _DONATIONS),
    Capability("record_donations", "Record donations", _DONATIONS),
    Capability("delete_donations", "Delete donations", _DONATIONS),
    Capability("view_goals", "View goals", _GOALS),
    Capability("manage_goals", "Manage goals", _GOALS),
    Capability("view_leaderboard", "View leaderboard", _GOALS),
    Capability("manage_payment_methods", "Manage payment methods", _DATA),
    Capability("import_data", "Import data", _DATA),
    Capability("export_data", "Export data", _DATA),
    Capability("delete_own_data", "Delete own data", _DATA),
)

VALID_PRIVILEGE_CODES = tuple(c.code for c in PRIVILEGE_DEFINITIONS)
_CAPABILITIES = {c.code: c for c in PRIVILEGE_DEFINITIONS}


def _row(default="none", **scopes):
    row = {code: default for code in VALID_PRIVILEGE_CODES}
    row.update(scopes)
    return row


# Every capability not named in a row takes the row default.
_ROLE_DEFAULTS = {
    "member": _row(
        view_scout_profiles="S", view_badge_progress="S",
        view_events="T", export_calendar="T",
        view_sales="S", record_sales="S",
        view_donations="S", record_donations="S", delete_donations="S",
        view_goals="T", view_leaderboard="T",
        manage_payment_methods="S", export_data="S", delete_own_data="S",
    ),
    "parent": _row(
        view_scout_profiles="H", view_badge_progress="H", edit_personal_info="H",
        view_events="T", export_calendar="T",
        view_sales="H", record_sales="H",
        view_donations="H", record_donations="H", delete_donations="H",
        view_goals="T", view_leaderboard="T",
        manage_payment_methods="S", export_data="H", delete_own_data="S",
    ),
    "volunteer": _row(
        view_roster="T",
        view_events="T", export_calendar="T",
        view_goals="T", view_leaderboard="T",
        manage_payment_methods="S", delete_own_data="S",
    ),
    "assistant": _row(
        view_roster="T",
        view_scout_profiles="D", view_badge_progress="D",
        view_events="T", manage_events="T", export_calendar="T",
        view_goals="T", view_leaderboard="T",
        manage_payment_methods="S", delete_own_data="S",
    ),
    "co-leader": _row(
        "T",
        manage_member_roles="none", manage_privileges="none",
        record_sales="S", manage_financials="none",
        record_donations="S", delete_donations="S",
        manage_payment_methods="S", import_data="none", delete_own_data="S",
    ),
    "cookie_leader": _row(
        view_roster="T",
        view_events="T", export_calendar="T",
        view_sales="T", record_sales="T", manage_fundraisers="T",
        view_troop_sales="T", view_financials="T", manage_financials="T",
        view_donations="T", record_donations="S",
        view_goals="T", view_leaderboard="T",
        manage_payment_methods="S", import_data="T", export_data="T",
        delete_own_data="S",
    ),
    "troop_leader": _row("T", manage_payment_methods="S", delete_own_data="S"),
    "admin": _row("T", manage_payment_methods="S", delete_own_data="S"),
    "cookie_manager": _row(
        view_roster="T",
        view_scout_profiles="T", view_badge_progress="T",
        view_events="T", export_calendar="T",
        view_sales="T", record_sales="T", manage_fundraisers="T",
        view_troop_sales="T", view_financials="T", manage_financials="T",
        view_donations="T", record_donations="T",
        view_goals="T", manage_goals="T", view_leaderboard="T",
        manage_payment_methods="S", import_data="T", export_data="T",
        delete_own_data="S",
    ),
}

ROLE_PRIVILEGE_DEFAULTS = MappingProxyType(
    {role: MappingProxyType(row) for role, row in _ROLE_DEFAULTS.items()}
)
TROOP_ROLES = tuple(ROLE_PRIVILEGE_DEFAULTS)


def parse_scope(value):
    """Return the Scope for a token, or None when the token is not valid."""
    if isinstance(value, Scope):
        return value
    try:
        return Scope(value)
    except ValueError:
        return None


def scope_for(role, code) -> Scope:
    if not isinstance(code, str) or code not in _CAPABILITIES:
        return Scope.NONE
    row = ROLE_PRIVILEGE_DEFAULTS.get(role) if isinstance(role, str) else None
    if row is None:
        return Scope.NONE
    return parse_scope(row.get(code)) or Scope.NONE


def is_permitted(role, code) -> bool:
    return scope_for(role, code) is not Scope.NONE


def compare_scopes(a, b) -> int:
    """
    Positive when `a` is broader than `b`, negative when narrower, 0 if equal.
    Unrecognised tokens compare as Scope.NONE.
    """
    a = parse_scope(a) or Scope.NONE
    b = parse_scope(b) or Scope.NONE
    return a.breadth - b.breadth


def broadest_scope(scopes) -> Scope:
    best = Scope.NONE
    for scope in scopes:
        if compare_scopes(scope, best) > 0:
            best = parse_scope(scope)
    return best


def effective_scope(roles, code) -> Scope:
    """
    Scope granted for one capability to a user holding several roles.
    The broadest grant wins; each capability is decided on its own.
    """
    return broadest_scope(scope_for(role, code) for role in roles)


def effective_scopes(roles) -> dict:
    roles = [r for r in roles if r]
    return {code: effective_scope(roles, code) for code in VALID_PRIVILEGE_CODES}


def apply_overrides(role, overrides) -> dict:
    """
    Role defaults with per-troop overrides laid on top, as a fresh dict.

    `overrides` is an iterable of (code, scope) pairs. Pairs with an unknown
    code or scope are ignored.
    """
    scopes = {code: scope_for(role, code) for code in VALID_PRIVILEGE_CODES}
    for code, scope in overrides:
        parsed = parse_scope(scope)
        if code in scopes and parsed is not None:
            scopes[code] = parsed
    return scopes


def build_effective_privileges(role, overrides=()):
    """List of capability dicts for the privilege editing screen."""
    override_map = {}
    for code, scope in overrides:
        parsed = parse_scope(scope)
        if code in _CAPABILITIES and parsed is not None:
            override_map[code] = parsed

    out = []
    for cap in PRIVILEGE_DEFINITIONS:
        default = scope_for(role, cap.code)
        scope = override_map.get(cap.code, default)
        out.append({
            "code": cap.code,
            "name": cap.name,
            "category": cap.category,
            "scope": scope.value,
            "default_scope": default.value,
            "is_override": cap.code in override_map and scope is not default,
        })
    return out


def catalog():
    return [cap._asdict() for cap in PRIVILEGE_DEFINITIONS]


def validate_privilege_matrix(matrix=None):
    """
    Raise PrivilegeMatrixError unless every role defines a valid scope
    for every capability in the catalog.
    """
    matrix = ROLE_PRIVILEGE_DEFAULTS if matrix is None else matrix
    problems = []
    for role, row in matrix.items():
        missing = [code for code in VALID_PRIVILEGE_CODES if code not in row]
        if missing:
            problems.append(f"{role}: missing {', '.join(missing)}")
        unknown = [code for code in row if code not in _CAPABILITIES]
        if unknown:
            problems.append(f"{role}: unknown capability {', '.join(unknown)}")
        bad = [code for code, scope in row.items() if parse_scope(scope) is None]
        if bad:
            problems.append(f"{role}: invalid scope for {', '.join(bad)}")
    if problems:
        raise PrivilegeMatrixError("Invalid privilege matrix: " + "; ".join(problems))
    return len(matrix), len(VALID_PRIVILEGE_CODES)
