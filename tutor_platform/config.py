from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    """
    Settings for the Tutor Platform API.

    Please do not modify this file directly.
    Instead, create a .env file in the root directory of the project
    and specify the settings you would like to change there.
    For example, if you would like to use a redis server, add the following
    line to the .env file:
    - USE_REDIS=True.

    Some settings are required to be set in the .env file, such as:
    - SECRET_KEY

    Sensitive values (SECRET_KEY, SMTP_PASSWORD, CLOUDINARY_API_SECRET) should never
    be pushed to GitHub so they need to be set as environment variables.

    SUMMARY:
    - Override settings (if needed) using a .env file
    - Never push the .env file to GitHub (it should be in .gitignore)
    - The only required .env setting is SECRET_KEY
    """

    # Application settings
    app_name: str = "Tutor Platform API"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # Local vs production settings
    local: bool = True # Default to local development

    # Token settings
    access_token_expire_minutes: int = 60 * 24 * 7
    secret_key: str
    hash_algorithm: str = "HS256"

    # Logs settings
    logs_dir: str = "logs"

    # Database settings
    db_url: str = "sqlite:///tutor_platform.db" # Default, for local development

    # Redis settings
    use_redis: bool = False # Default to not using Redis, change this to True if you have a Redis server set up
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    cache_expire_seconds: int = 600

    # OTP settings
    otp_expire_minutes: int = 10
    otp_resend_cooldown_seconds: int = 60
    otp_max_attempts: int = 5

    # Email settings. Without an smtp_host, emails are written to the log instead.
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    email_from: str = "noreply@tutorplatform.com"
    email_from_name: str = "Tutor Platform"

    # Cloudinary settings
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_upload_folder: str = "tutor-certificates"
    # generic uploads land in <user_upload_folder>/<user id>
    user_upload_folder: str = "user-uploads"

    # Upload limits
    max_upload_size_mb: int = 10
    max_upload_files: int = 5

    # Insert the default subjects and grades on startup
    seed_catalog: bool = True

    # Rate limiting
    rate_limit_enabled: bool = True

    # Bootstrap admin, created on startup when both are set
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None

    # CORS
    cors_origins: List[str] = ["*"]

    # Load settings from .env file
    model_config = SettingsConfigDict(env_file=".env")

@lru_cache() # Cache settings to avoid reading .env file multiple times
def get_settings():
    """
    Use this function as a dependency to get the settings object.
    Dependency injection will make it easier to test endpoints with different settings, simply inject a different settings object.
    """
    return Settings()
