from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60 * 24 * 30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    # Academic calendar rules
    academic_year_min: int = Field(2000, alias="ACADEMIC_YEAR_MIN")
    academic_year_max: int = Field(3000, alias="ACADEMIC_YEAR_MAX")
    term_week_count: int = Field(16, alias="TERM_WEEK_COUNT")
    max_hours_per_week: int = Field(168, alias="MAX_HOURS_PER_WEEK")

    db_echo: Optional[bool] = Field(False, alias="DB_ECHO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
