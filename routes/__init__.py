from .health import health_bp
from .auth import auth_bp
from .privileges import privileges_bp
from .system import system_bp
