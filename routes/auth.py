from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User
from models.troop import TroopMember
from security.password import hash_password, verify_password, password_problems
from security.session import create_session, revoke_session, cookie_name
from security.bruteforce import get_login_guard
from security.rate_limit import check_login_rate
from utils.audit import log_event
from utils.auth_context import login_required


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _normalize_email(value) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def _is_valid_email(email: str) -> bool:
    return "@" in email and len(email) <= 255


def _clean_name(value):
    if not isinstance(value, str):
        return None
    return value.strip()[:100] or None


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = _normalize_email(data.get("email"))
    password = data.get("password") or ""

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    problems = password_problems(password)
    if problems:
        return jsonify(error="Password does not meet policy", details=problems), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=_clean_name(data.get("first_name")),
        last_name=_clean_name(data.get("last_name")),
        role=current_app.config.get("DEFAULT_USER_ROLE", "member"),
    )
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id)
    current_app.logger.info("New user registered: user=%s", user.id)
    return jsonify(message="Registration successful. Please log in.", user_id=user.id), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = _normalize_email(data.get("email"))
    password = data.get("password") or ""

    allowed, retry_after = check_login_rate()
    if not allowed:
        current_app.logger.warning("Login rate limit exceeded for %s", email or "<blank>")
        log_event("LOGIN_RATE_LIMIT", metadata={"email": email, "retry_after": retry_after})
        return jsonify(
            error="Too many login attempts. Please try again later.",
            retry_after_seconds=retry_after,
        ), 429

    if not email:
        return jsonify(error="Email and password are required"), 400

    guard = get_login_guard()
    locked, seconds_left = guard.lockout_status(email)
    if locked:
        current_app.logger.warning("Login attempt on locked account %s", email)
        log_event("LOGIN_LOCKED", metadata={"email": email, "seconds_left": seconds_left})
        return jsonify(
            error="Too many failed attempts. Try again after the lockout window.",
            retry_after_seconds=seconds_left,
        ), 429

    user = User.query.filter_by(email=email).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        fail_count = guard.record_failure(email)
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            metadata={"email": email, "fail_count": fail_count},
        )
        if fail_count >= guard.threshold:
            current_app.logger.warning("Account %s locked after %d failed logins", email, fail_count)
        return jsonify(error="Invalid credentials"), 401

    guard.clear_record(email)

    user.last_login_at = datetime.utcnow()
    db.session.commit()

    raw_token = create_session(user.id)

    resp = jsonify(message="Login successful", user=user.summary())
    resp.set_cookie(
        cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"method": "local"})
    current_app.logger.info("User logged in: user=%s", user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    memberships = (
        TroopMember.query
        .filter_by(user_id=g.user.id, status="active")
        .order_by(TroopMember.troop_id)
        .all()
    )
    return jsonify(
        user=g.user.summary(),
        troops=[
            {"troop_id": m.troop_id, "troop_role": m.role, "den": m.den}
            for m in memberships
        ],
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(request.cookies.get(cookie_name()))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name(), path="/")
    return resp, 200
