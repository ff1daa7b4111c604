from decimal import Decimal
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    # Token endpoint of the identity provider that issues staff tokens; not served by this app
    auth_token_url: str = Field("/api/v1/auth/login", alias="AUTH_TOKEN_URL")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Student number issuance
    default_range_prefix: str = Field("w", alias="DEFAULT_RANGE_PREFIX")

    # Offer letters
    offer_letter_dir: str = Field("uploads/offer-letters", alias="OFFER_LETTER_DIR")
    offer_letter_public_prefix: str = Field("/uploads/offer-letters", alias="OFFER_LETTER_PUBLIC_PREFIX")
    offer_letter_template_path: str = Field("templates/offer-letter.txt", alias="OFFER_LETTER_TEMPLATE_PATH")
    offer_letter_logo_path: str = Field("uploads/logo.png", alias="OFFER_LETTER_LOGO_PATH")
    institution_name: str = Field("Women's University in Africa", alias="INSTITUTION_NAME")
    institution_short_name: str = Field("WUA", alias="INSTITUTION_SHORT_NAME")
    signatory_role: str = Field("Deputy Registrar (Academic Affairs)", alias="SIGNATORY_ROLE")
    default_signatory_name: str = Field("M. Chirongoma - Munyoro (Mrs)", alias="DEFAULT_SIGNATORY_NAME")
    default_down_payment: Decimal = Field(Decimal("250"), alias="DEFAULT_DOWN_PAYMENT")
    verification_base_url: Optional[str] = Field(None, alias="VERIFICATION_BASE_URL")

    # Outbound email
    smtp_host: str = Field("smtp-mail.outlook.com", alias="SMTP_HOST")
    smtp_port: int = Field(587, alias="SMTP_PORT")
    smtp_username: Optional[str] = Field(None, alias="SMTP_USERNAME")
    smtp_password: Optional[str] = Field(None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(True, alias="SMTP_USE_TLS")
    smtp_timeout_seconds: int = Field(30, alias="SMTP_TIMEOUT_SECONDS")
    email_from: Optional[str] = Field(None, alias="EMAIL_FROM")

    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")
    admin_full_name: str = Field("Registry Admin", alias="ADMIN_FULL_NAME")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
