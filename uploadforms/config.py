"""Upload forms configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class UploadFormsSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///uploadforms.db"
    echo_sql: bool = False
    app_title: str = "Upload Forms"
    log_level: str = "INFO"

    # Admin session (issued after Google sign-in)
    auth_enabled: bool = False
    auth_secret: str = ""
    auth_cookie_name: str = "uf_session"
    auth_cookie_secure: bool = False
    auth_session_ttl_seconds: int = 86400

    # Google OAuth (Drive + Sheets on behalf of the form owner)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8000/auth/google/callback"
    google_scopes: str = (
        "openid email profile "
        "https://www.googleapis.com/auth/drive.file "
        "https://www.googleapis.com/auth/spreadsheets"
    )

    # Response sheet "Uploaded At" column and editor datetime inputs
    sheets_timezone: str = "UTC"
    editor_timezone: str = "UTC"

    # Editor auto-save debounce
    autosave_delay_seconds: float = 1.0

    # Public form hardening
    form_rate_limit_window_seconds: int = 60
    form_rate_limit_max_submissions: int = 10
    form_rate_limit_block_seconds: int = 300

    # Base URL the admin controllers and CLI talk to
    admin_api_url: str = "http://localhost:8000"

    model_config = {"env_prefix": "UPLOADFORMS_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def templates_dir(self) -> Path:
        return self.base_dir / "templates"

    @property
    def google_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def google_scope_list(self) -> list[str]:
        return [s for s in self.google_scopes.split() if s]

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = UploadFormsSettings()
