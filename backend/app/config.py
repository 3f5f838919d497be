"""
BranchRelay Backend — Application Configuration
=================================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading; the AWS and Google credentials
       live in one struct instead of being read ad hoc from os.environ.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Constructed once at import time and handed to StorageService,
       SheetsService and BranchService.
When:  Loaded once at module import time; checked again at startup and
       before each provider call.

Environment variables:
    AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_S3_BUCKET_NAME  (required)
    AWS_REGION                                  (default: us-east-1)
    GOOGLE_SHEETS_SERVICE_ACCOUNT, GOOGLE_SHEETS_PRIVATE_KEY,
    SPREADSHEET_ID                              (required)
    SHEET_NAME                                  (default: Sheet1)
    PORT                                        (default: 3000)

Design Decision:
    Required credentials default to "" rather than being mandatory fields.
    A missing credential must not stop the process from booting: /health keeps
    answering and the failure is reported per request as a ConfigurationError.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── AWS S3 ────────────────────────────────────────────────────────────
    aws_access_key_id: str = Field(default="", description="AWS access key")
    aws_secret_access_key: str = Field(default="", description="AWS secret key")
    aws_s3_bucket_name: str = Field(default="", description="Bucket for branch images")
    # What: Region of the bucket; also used to build the public object URL
    aws_region: str = Field(default="us-east-1")

    # ── Google Sheets ─────────────────────────────────────────────────────
    # What: Service account e-mail (client_email in the JSON key file)
    google_sheets_service_account: str = Field(default="")
    # What: PEM private key, usually stored on one line with literal "\n"
    # See sheets_service.normalize_private_key for the clean-up rules
    google_sheets_private_key: str = Field(default="")
    spreadsheet_id: str = Field(default="")
    sheet_name: str = Field(default="Sheet1")

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)

    # What: Ceiling on the JSON request body (three base64 images)
    # Default: 10MB = 10 * 1024 * 1024 = 10485760
    max_body_size: int = Field(default=10_485_760, ge=1_048_576, le=52_428_800)

    # What: Allowed CORS origins, comma-separated. "*" allows every origin.
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # AWS_REGION and aws_region both work
        "extra": "ignore",
    }

    def missing_storage_settings(self) -> List[str]:
        """Names of the required S3 environment variables that are unset."""
        required = {
            "AWS_ACCESS_KEY_ID": self.aws_access_key_id,
            "AWS_SECRET_ACCESS_KEY": self.aws_secret_access_key,
            "AWS_S3_BUCKET_NAME": self.aws_s3_bucket_name,
        }
        return [name for name, value in required.items() if not value]

    def missing_sheets_settings(self) -> List[str]:
        """Names of the required Google Sheets environment variables that are unset."""
        required = {
            "GOOGLE_SHEETS_SERVICE_ACCOUNT": self.google_sheets_service_account,
            "GOOGLE_SHEETS_PRIVATE_KEY": self.google_sheets_private_key,
            "SPREADSHEET_ID": self.spreadsheet_id,
        }
        return [name for name, value in required.items() if not value]

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that every provider credential is configured.
        When:  Called during app startup (lifespan).
        Why:   Surfaces a misconfigured deployment in the startup log instead of
               on the first branch submission.
        """
        missing = self.missing_storage_settings() + self.missing_sheets_settings()
        if missing:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {name} is not set" for name in missing)
            )


# Singleton instance: constructed once at process start and passed to services
settings = Settings()
