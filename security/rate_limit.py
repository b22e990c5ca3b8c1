from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.rate_window import RateWindow

def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        # first hop is the original client
        return forwarded.split(",")[0].strip()[:64]
    return request.remote_addr or "unknown"

def check_and_increment(endpoint: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
    """
    Returns (allowed, retry_after_seconds).
    Fixed window per client IP and endpoint.
    """
    ip = client_ip()
    now = datetime.utcnow()

    row = RateWindow.query.filter_by(ip=ip, endpoint=endpoint).first()
    if not row:
        row = RateWindow(ip=ip, endpoint=endpoint, window_start=now, count=0)
        db.session.add(row)

    window_end = row.window_start + timedelta(seconds=window_seconds)
    if now >= window_end:
        row.window_start = now
        row.count = 0
        window_end = now + timedelta(seconds=window_seconds)

    row.count += 1
    db.session.commit()

    if row.count > max_requests:
        retry_after = int((window_end - now).total_seconds())
        return False, max(retry_after, 1)

    return True, 0

def check_login_rate() -> tuple[bool, int]:
    return check_and_increment(
        "auth.login",
        current_app.config.get("LOGIN_RATE_MAX_REQUESTS", 15),
        current_app.config.get("LOGIN_RATE_WINDOW_SECONDS", 60),
    )
