from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application Config
    PROJECT_NAME: str = Field(default="BloodLink API")
    PROJECT_DESCRIPTION: str = Field(
        default="Blood donation coordination between hospitals, blood banks and donors"
    )
    VERSION: str = Field(default="1.0.0")
    API_PREFIX: str = Field(default="/api")
    DOCS_URL: str = Field(default="/docs")

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=True)

    # Database
    DATABASE_URL: str = Field(default="")
    DEV_DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./bloodlink.sqlite3")
    CREATE_TABLES_ON_STARTUP: bool = Field(default=True)

    # Security
    SECRET_KEY: str = Field(default="dev-secret-key")
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)

    # CORS Configuration
    BACKEND_CORS_ORIGINS: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost",
        ]
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_TO_FILE: bool = Field(default=False)

    # Seeded administrator
    SYS_ADMIN: str = Field(default="admin@bloodlink.org")
    SYS_ADMIN_PASS: str = Field(default="admin123")
    SYS_ADMIN_NAME: str = Field(default="System Administrator")

    # Scheduler
    ENABLE_SCHEDULER: bool = Field(default=True)
    EXPIRY_SWEEP_INTERVAL_MINUTES: int = Field(default=60)

    # Domain policy
    DONATION_SHELF_LIFE_DAYS: int = Field(default=42)
    MIN_DAYS_BETWEEN_DONATIONS: int = Field(default=56)
    NOTIFICATION_LIST_LIMIT: int = Field(default=50)
    TRANSACTION_LIST_LIMIT: int = Field(default=100)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def model_post_init(self, __context) -> None:
        """Post-initialization validation and setup"""
        if isinstance(self.BACKEND_CORS_ORIGINS, str):
            self.BACKEND_CORS_ORIGINS = [
                origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",")
            ]

        if self.ENVIRONMENT.lower() == "production":
            if not self.DATABASE_URL:
                raise ValueError("DATABASE_URL must be set in production!")
            if not self.SECRET_KEY or self.SECRET_KEY == "dev-secret-key":
                raise ValueError(
                    "SECRET_KEY must be set to a secure value in production!"
                )
        else:
            # Outside production fall back to the local SQLite database
            if not self.DATABASE_URL:
                self.DATABASE_URL = self.DEV_DATABASE_URL


settings = Settings()
