from datetime import datetime
from models.db import db

class RateWindow(db.Model):
    """Fixed-window request counter per (client ip, endpoint)."""
    __tablename__ = "rate_windows"
    __table_args__ = (
        db.UniqueConstraint("ip", "endpoint", name="uq_rate_window_ip_endpoint"),
    )

    id = db.Column(db.Integer, primary_key=True)
    ip = db.Column(db.String(64), nullable=False, index=True)
    endpoint = db.Column(db.String(80), nullable=False)

    window_start = db.Column(db.DateTime, nullable=False)
    count = db.Column(db.Integer, default=0, nullable=False)
