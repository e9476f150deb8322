# ev_admin_system/core/config.py
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

# Load variables from a local .env file, if there is one.
load_dotenv()

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000,"
    "http://localhost:5173,"
    "https://v2-stg-parkncharge.sysnetph.com,"
    "http://localhost:3001"
)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    database_url: str = "sqlite:///./sql_app.db"
    api_host: str = "0.0.0.0"
    api_port: int = 4003
    google_geo_api_key: str = ""
    geocoding_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    geocoding_timeout: float = 10.0
    cors_origins: List[str] = field(default_factory=lambda: _split_csv(DEFAULT_CORS_ORIGINS))
    upload_dir: str = "./public/images"
    max_upload_files: int = 5
    jwt_secret: str = "dev-secret"
    jwt_algorithm: str = "HS256"
    basic_auth_token: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_timeout: float = 10.0
    mail_sender: str = "no-reply@parkncharge.com.ph"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL") or defaults.database_url,
            api_host=os.getenv("API_HOST", defaults.api_host),
            api_port=int(os.getenv("API_PORT", defaults.api_port)),
            google_geo_api_key=os.getenv("GOOGLE_GEO_API_KEY", defaults.google_geo_api_key),
            geocoding_url=os.getenv("GEOCODING_URL", defaults.geocoding_url),
            geocoding_timeout=float(os.getenv("GEOCODING_TIMEOUT", defaults.geocoding_timeout)),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)),
            upload_dir=os.getenv("UPLOAD_DIR", defaults.upload_dir),
            max_upload_files=int(os.getenv("MAX_UPLOAD_FILES", defaults.max_upload_files)),
            jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", defaults.jwt_algorithm),
            basic_auth_token=os.getenv("BASIC_AUTH_TOKEN", defaults.basic_auth_token),
            smtp_host=os.getenv("SMTP_HOST", defaults.smtp_host),
            smtp_port=int(os.getenv("SMTP_PORT", defaults.smtp_port)),
            smtp_user=os.getenv("SMTP_USER", defaults.smtp_user),
            smtp_password=os.getenv("SMTP_PASSWORD", defaults.smtp_password),
            smtp_timeout=float(os.getenv("SMTP_TIMEOUT", defaults.smtp_timeout)),
            mail_sender=os.getenv("MAIL_SENDER", defaults.mail_sender),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings.from_env()
    if "JWT_SECRET" not in os.environ:
        logging.getLogger(__name__).warning("JWT_SECRET not defined, using the development secret.")
    return settings
