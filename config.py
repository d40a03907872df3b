import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _csv(value: str) -> list:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Config:
    APP_ENV = os.getenv("APP_ENV", "development")

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    JWT_SECRET = os.getenv("JWT_SECRET") or SECRET_KEY
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    # SQLite database file stored next to the app as tenantauth.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "tenantauth.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "false").lower() == "true"

    # Transport token cookie
    AUTH_COOKIE_NAME = "accessToken"

    # 24 hours token lifetime
    ACCESS_TOKEN_TTL_SECONDS = int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", str(24 * 60 * 60)))

    # Cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = APP_ENV == "production"

    # CSRF double-submit
    CSRF_COOKIE_NAME = "XSRF-TOKEN"
    CSRF_HEADER_NAME = "X-XSRF-TOKEN"

    # Query cache: memory | redis | valkey
    CACHE_DRIVER = os.getenv("CACHE_DRIVER", "memory")
    CACHE_TTL = int(os.getenv("CACHE_TTL", "300"))
    CACHE_KEY_PREFIX = os.getenv("CACHE_KEY_PREFIX", "qc")
    CACHE_SOCKET_TIMEOUT = float(os.getenv("CACHE_SOCKET_TIMEOUT", "2"))
    CACHE_BYPASS_MODELS = _csv(os.getenv("CACHE_BYPASS_MODELS", "user_tokens,one_time_codes"))
    REDIS_URL = os.getenv("REDIS_URL")
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_USERNAME = os.getenv("REDIS_USERNAME")
    REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
    CACHE_SECURE = os.getenv("CACHE_SECURE", "false").lower() == "true"

    # Brute-force protection: failed logins per (ip, email) inside the window
    LOGIN_THRESHOLD = int(os.getenv("LOGIN_THRESHOLD", "10"))
    LOGIN_WINDOW_SECONDS = int(os.getenv("LOGIN_WINDOW_SECONDS", str(24 * 60 * 60)))

    # Proxies in front of the app; X-Forwarded-For is ignored unless this is > 0
    TRUSTED_PROXY_COUNT = int(os.getenv("TRUSTED_PROXY_COUNT", "0"))

    # Browser origins allowed to call the API with credentials; "*" is a wildcard
    ALLOWED_ORIGINS = _csv(os.getenv("ALLOWED_ORIGINS", "http://localhost:3000"))

    # App-wide IP rate limit
    API_RATE_WINDOW_SECONDS = int(os.getenv("API_RATE_WINDOW_SECONDS", "60"))
    API_RATE_MAX_REQUESTS = int(os.getenv("API_RATE_MAX_REQUESTS", "15"))

    # Simple IP rate limit for login endpoint
    LOGIN_RATE_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_WINDOW_SECONDS", "60"))
    LOGIN_RATE_MAX_REQUESTS = int(os.getenv("LOGIN_RATE_MAX_REQUESTS", "15"))

    # One-time codes
    VERIFICATION_CODE_LENGTH = int(os.getenv("VERIFICATION_CODE_LENGTH", "6"))
    VERIFICATION_CODE_TTL_MINUTES = int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "15"))
    PASSWORD_RESET_CODE_LENGTH = int(os.getenv("PASSWORD_RESET_CODE_LENGTH", "8"))
    PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TIME", "120"))
    OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))

    # bcrypt cost factors
    CODE_HASH_ROUNDS = int(os.getenv("CODE_HASH_ROUNDS", "10"))
    PASSWORD_HASH_ROUNDS = int(os.getenv("PASSWORD_HASH_ROUNDS", "12"))

    # Password policy
    PASSWORD_MIN_LEN = int(os.getenv("PASSWORD_MIN_LEN", "8"))

    # Links in outgoing mail
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
