## backoffice/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    allowed_cors_urls: str = "http://localhost:5173"

    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Docusign integration (required-ness is enforced by the credentials loader)
    ds_integration_key: Optional[str] = None
    ds_user_id: Optional[str] = None
    ds_account_id: Optional[str] = None
    ds_auth_base_url: Optional[str] = None
    ds_base_path: Optional[str] = None
    ds_template_id: Optional[str] = None
    ds_private_key_base64: Optional[str] = None
    ds_http_timeout_seconds: float = 60.0

    @property
    def is_production(self) -> bool:
        """
        Whether the application runs in production
        """
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        """
        CORS origins as a list
        """
        return [url.strip() for url in self.allowed_cors_urls.split(",") if url.strip()]


settings = Settings()
