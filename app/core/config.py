from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "ExpenseInsights"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Record store: "dynamo" or "memory"
    STORE_BACKEND: str = Field(default="dynamo")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_EXPENSES_TABLE: str = Field(default="expense-insights-expenses", validation_alias="DYNAMO_TABLE_EXPENSES")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production", validation_alias="JWT_SECRET")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    AUTH_TOKEN_URL: str = "/api/auth/login"

    # Gemini enrichment (optional)
    GEMINI_API_KEY: Optional[str] = Field(default=None)
    GEMINI_MODEL: str = Field(default="gemini-1.5-flash")
    ENRICHMENT_TIMEOUT_SECONDS: float = Field(default=8.0)

    # Calendar months and date-only inputs are interpreted in this zone
    REPORT_TIMEZONE: str = Field(default="UTC")


settings = Settings()
