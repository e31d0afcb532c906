from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Timezone in which "today" and stored calendar days are interpreted
    reference_timezone: str = Field("UTC", alias="REFERENCE_TIMEZONE")
    # Comma-separated roles allowed to act on any class
    admin_override_roles: str = Field("admin,super_admin", alias="ADMIN_OVERRIDE_ROLES")
    # Attempts before a uniqueness race on upsert is surfaced as a conflict
    upsert_max_attempts: int = Field(3, alias="UPSERT_MAX_ATTEMPTS", ge=1)

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def admin_override_role_list(self) -> List[str]:
        return [r.strip() for r in self.admin_override_roles.split(",") if r.strip()]


settings = Settings()
