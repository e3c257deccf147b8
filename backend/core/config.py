import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./mock_interviews.db")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))

CORS_ALLOWED_ORIGINS = _get_list(
    os.getenv("CORS_ALLOWED_ORIGINS"),
    default=["http://localhost:5173", "http://localhost:3000"],
)


@dataclass(frozen=True)
class AuthSettings:
    """Signing parameters handed to the token helpers and the credential verifier."""
    secret_key: str
    algorithm: str = "HS256"
    expires_minutes: int = 60


def get_auth_settings() -> AuthSettings:
    return AuthSettings(
        secret_key=JWT_SECRET_KEY,
        algorithm=JWT_ALGORITHM,
        expires_minutes=JWT_EXPIRES_MINUTES,
    )


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
