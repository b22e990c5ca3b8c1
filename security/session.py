import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session
from security.rate_limit import client_ip

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "scoutmanager_session")

def create_session(user_id: int) -> str:
    """
    Creates a server-side session and returns the RAW token for the cookie.
    Only its hash is stored.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)

    row = Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    )
    db.session.add(row)
    db.session.commit()
    return raw_token

def get_session_from_request():
    raw_token = request.cookies.get(cookie_name())
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return None

    now = datetime.utcnow()
    if not sess.is_usable(now, current_app.config.get("IDLE_TIMEOUT_SECONDS", 1800)):
        return None

    sess.touch(now)
    db.session.commit()
    return sess

def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoked = True
    db.session.commit()
    return True
