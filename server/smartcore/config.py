import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_FROM_ADDRESS = "SmartCore Technology <support@smartcoretechnology.co.uk>"

# Settings attribute -> environment variable it is read from
ENV_NAMES: dict[str, str] = {
    "supabase_url": "SUPABASE_URL",
    "supabase_service_role_key": "SUPABASE_SERVICE_ROLE_KEY",
    "code_salt": "CODE_SALT",
    "resend_api_key": "RESEND_API_KEY",
}


@dataclass
class Settings:
    # Data store / identity
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Signup codes
    code_salt: Optional[str] = None
    code_ttl_minutes: int = 10

    # Email
    resend_api_key: Optional[str] = None
    resend_from: str = DEFAULT_FROM_ADDRESS

    # Server
    port: int = 8000
    allowed_origins: list[str] = field(default_factory=list)
    http_timeout_seconds: float = 20.0

    def require(self, *names: str) -> None:
        """Raise ConfigurationError for the first missing secret in ``names``."""
        for name in names:
            if not getattr(self, name, None):
                raise ConfigurationError(f"Missing {ENV_NAMES.get(name, name.upper())} env var")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip().strip('"')
    return cleaned or None


def load_settings() -> Settings:
    """Build settings from the environment (and a local .env file)."""
    load_dotenv()

    raw_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000")
    allowed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    supabase_url = _clean(os.getenv("SUPABASE_URL"))
    if supabase_url:
        supabase_url = supabase_url.rstrip("/")

    return Settings(
        supabase_url=supabase_url,
        supabase_service_role_key=_clean(os.getenv("SUPABASE_SERVICE_ROLE_KEY")),
        code_salt=_clean(os.getenv("CODE_SALT")),
        code_ttl_minutes=int(os.getenv("SIGNUP_CODE_TTL_MINUTES", "10")),
        resend_api_key=_clean(os.getenv("RESEND_API_KEY")),
        resend_from=_clean(os.getenv("RESEND_FROM")) or DEFAULT_FROM_ADDRESS,
        port=int(os.getenv("PORT", "8000")),
        allowed_origins=allowed_origins,
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "20")),
    )
