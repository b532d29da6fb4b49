import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()


def _csv(value):
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Config:
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "password")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "minidrive")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or (
        f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Services hosted by this process ("all" = every backend service)
    MINIDRIVE_SERVICES = _csv(os.getenv("MINIDRIVE_SERVICES", "all"))

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_NAME = "Authorization"
    JWT_HEADER_TYPE = "Bearer"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        minutes=int(os.getenv("JWT_ACCESS_TOKEN_MINUTES", str(12 * 60)))
    )
    JWT_ENCODE_ISSUER = os.getenv("JWT_ISSUER", "minidrive")
    JWT_DECODE_ISSUER = JWT_ENCODE_ISSUER
    JWT_ENCODE_AUDIENCE = os.getenv("JWT_AUDIENCE", "minidrive-clients")
    JWT_DECODE_AUDIENCE = JWT_ENCODE_AUDIENCE
    JWT_ENCODE_NBF = True
    JWT_DECODE_LEEWAY = int(os.getenv("JWT_LEEWAY_SECONDS", "60"))
    JWT_ERROR_MESSAGE_KEY = "error"

    # Storage
    STORAGE_ROOT = os.getenv("STORAGE_ROOT", os.path.join(os.getcwd(), "storage"))
    STORAGE_MAX_FILE_SIZE_BYTES = int(os.getenv("STORAGE_MAX_FILE_SIZE_BYTES", str(100 * 1024 * 1024)))
    STORAGE_ALLOWED_EXTENSIONS = _csv(os.getenv("STORAGE_ALLOWED_EXTENSIONS"))
    MAX_CONTENT_LENGTH = STORAGE_MAX_FILE_SIZE_BYTES + 1024 * 1024

    # Quota
    DEFAULT_QUOTA_BYTES = int(os.getenv("DEFAULT_QUOTA_BYTES", str(5 * 1024 * 1024 * 1024)))

    # Downstream services (empty = hosted in this process)
    IDENTITY_SERVICE_URL = os.getenv("IDENTITY_SERVICE_URL", "http://localhost:5001")
    FILES_SERVICE_URL = os.getenv("FILES_SERVICE_URL", "http://localhost:5002")
    FOLDERS_SERVICE_URL = os.getenv("FOLDERS_SERVICE_URL", "http://localhost:5003")
    QUOTA_SERVICE_URL = os.getenv("QUOTA_SERVICE_URL", "http://localhost:5004")
    AUDIT_SERVICE_URL = os.getenv("AUDIT_SERVICE_URL", "http://localhost:5005")
    SHARING_SERVICE_URL = os.getenv("SHARING_SERVICE_URL", "http://localhost:5006")

    SERVICE_TIMEOUT_SECONDS = float(os.getenv("SERVICE_TIMEOUT_SECONDS", "10"))
    SERVICE_RETRY_TOTAL = int(os.getenv("SERVICE_RETRY_TOTAL", "3"))
    SERVICE_RETRY_BACKOFF = float(os.getenv("SERVICE_RETRY_BACKOFF", "2"))
    IDENTITY_CACHE_TTL_SECONDS = int(os.getenv("IDENTITY_CACHE_TTL_SECONDS", "300"))
    IDENTITY_CACHE_MAX_ENTRIES = int(os.getenv("IDENTITY_CACHE_MAX_ENTRIES", "10000"))

    CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"))

    # Logging / performance monitoring
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SLOW_OPERATION_THRESHOLD_MS = float(os.getenv("SLOW_OPERATION_THRESHOLD_MS", "200"))
