import json
from flask import request
from models import db
from models.audit_log import AuditLog
from security.rate_limit import client_ip

def log_event(action: str, user_id=None, resource_type=None, resource_id=None, troop_id=None, metadata=None):
    """Appends one row to the security audit trail."""
    user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        troop_id=troop_id,
        ip=client_ip(),
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata) if metadata else None,
    )
    db.session.add(row)
    db.session.commit()
