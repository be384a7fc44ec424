"""
Environment-aware configuration.
Token lifetimes are expressed in minutes. Everything the credential services
need is turned into a services.settings.AuthSettings at app creation.
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

    # credential store
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///credentials.db")
    USER_MANAGEMENT_DATABASE_SCHEMA_NAME = os.getenv("USER_MANAGEMENT_DATABASE_SCHEMA_NAME", "public")

    # jwt configurations
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me-to-32-bytes-or-more")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_PUBLIC_KEY = os.getenv("JWT_PUBLIC_KEY")
    JWT_CLAIMS_NAMESPACE = os.getenv("JWT_CLAIMS_NAMESPACE", "https://hasura.io/jwt/claims")
    JWT_TOKEN_EXPIRES = int(os.getenv("JWT_TOKEN_EXPIRES", "15"))
    REFRESH_TOKEN_EXPIRES = int(os.getenv("REFRESH_TOKEN_EXPIRES", "43200"))  # 30 days

    # account registration
    USER_REGISTRATION_AUTO_ACTIVE = _env_bool("USER_REGISTRATION_AUTO_ACTIVE", False)
    DEFAULT_USER_ROLE = os.getenv("DEFAULT_USER_ROLE", "user")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    # no fallback: a missing secret must stop the app at startup
    JWT_SECRET = os.getenv("JWT_SECRET")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    USER_MANAGEMENT_DATABASE_SCHEMA_NAME = "public"
    JWT_SECRET = "test-jwt-secret-for-pytest-32chars!"
    JWT_ALGORITHM = "HS256"
    JWT_PUBLIC_KEY = None
    USER_REGISTRATION_AUTO_ACTIVE = False
    LOG_LEVEL = "DEBUG"


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/testing).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
