from .db import db
from .user import User
from .troop import Troop, TroopMember
from .privilege_override import PrivilegeOverride
from .session import Session
from .audit_log import AuditLog
from .rate_window import RateWindow
