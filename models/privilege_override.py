from datetime import datetime
from models.db import db

class PrivilegeOverride(db.Model):
    __tablename__ = "privilege_overrides"
    __table_args__ = (
        db.UniqueConstraint("troop_id", "user_id", "privilege_code", name="uq_privilege_override"),
        db.CheckConstraint("scope IN ('T', 'D', 'H', 'S', 'none')", name="ck_privilege_override_scope"),
        db.Index("ix_privilege_overrides_troop_user", "troop_id", "user_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    troop_id = db.Column(db.Integer, db.ForeignKey("troops.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    privilege_code = db.Column(db.String(50), nullable=False)
    scope = db.Column(db.String(10), nullable=False)

    granted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    granted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
