from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    aws_region: str = Field(default="eu-west-1", alias="AWS_REGION")
    app_env: str = Field(default="dev", alias="APP_ENV")
    secret_key: str = Field(alias="SECRET_KEY")
    s3_bucket: str = Field(default="household-ledger-dev", alias="S3_BUCKET")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    access_token_expire_minutes: int = Field(default=15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    encoding_algorithm: str = Field(default="HS256", alias="ENCODING_ALGORITHM")
    # first day of the week for week-based reporting periods
    week_start: str = Field(default="saturday", alias="WEEK_START")

    # Guarantees / nice errors early
    @field_validator("secret_key", "s3_bucket")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("required setting is empty")
        return v

    @field_validator("week_start")
    @classmethod
    def _weekday(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"}:
            raise ValueError(f"unknown weekday: {v}")
        return v


# Global settings instance
settings = Settings()
