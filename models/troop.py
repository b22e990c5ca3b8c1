from datetime import datetime
from models.db import db

class Troop(db.Model):
    __tablename__ = "troops"

    id = db.Column(db.Integer, primary_key=True)
    troop_number = db.Column(db.String(20), nullable=False)
    troop_type = db.Column(db.String(30), nullable=True)  # daisy, brownie, junior, ...
    council = db.Column(db.String(120), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    members = db.relationship("TroopMember", back_populates="troop", lazy="select")


class TroopMember(db.Model):
    __tablename__ = "troop_members"
    __table_args__ = (
        db.UniqueConstraint("troop_id", "user_id", name="uq_troop_member"),
    )

    id = db.Column(db.Integer, primary_key=True)
    troop_id = db.Column(db.Integer, db.ForeignKey("troops.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # troop-specific role, keys of ROLE_PRIVILEGE_DEFAULTS
    role = db.Column(db.String(50), default="member", nullable=False)
    den = db.Column(db.String(50), nullable=True)
    status = db.Column(db.String(20), default="active", nullable=False)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    troop = db.relationship("Troop", back_populates="members")
    user = db.relationship("User", back_populates="memberships")
