import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as scoutmanager.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "scoutmanager.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "scoutmanager_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(8 * 60 * 60)))

    # Idle timeout: 30 minutes
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(30 * 60)))

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Account lockout (in-memory, per email)
    LOCKOUT_THRESHOLD = int(os.getenv("LOCKOUT_THRESHOLD", "5"))
    LOCKOUT_DURATION_SECONDS = int(os.getenv("LOCKOUT_DURATION_SECONDS", str(15 * 60)))

    # Simple IP rate limit for login endpoint
    LOGIN_RATE_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_WINDOW_SECONDS", "60"))
    LOGIN_RATE_MAX_REQUESTS = int(os.getenv("LOGIN_RATE_MAX_REQUESTS", "15"))

    # Password hashing cost
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LENGTH = 8

    # Role given to self-registered accounts
    DEFAULT_USER_ROLE = "member"

    # Basic app settings
    DEBUG = False
