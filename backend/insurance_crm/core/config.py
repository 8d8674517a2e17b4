"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "crm_user"
    POSTGRES_PASSWORD: str = "crm_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "insurance_crm"

    # Full async URL override (e.g. sqlite+aiosqlite:///:memory: for tests)
    SQLALCHEMY_DATABASE_URI: str | None = None

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2)."""
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI.replace("+asyncpg", "").replace("+aiosqlite", "")
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Auth / JWT ────────────────────────────
    JWT_SECRET_KEY: str = "change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    JWT_ISSUER: str = "insurance-crm"
    BCRYPT_ROUNDS: int = 12

    # ── Agent bootstrap (seed script) ─────────
    AGENT_NAME: str = "Agent"
    AGENT_EMAIL: str = "agent@example.com"
    AGENT_PASSWORD: str = "change-me-now"

    # ── Cloudinary ────────────────────────────
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "client-documents"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024
    ALLOWED_FILE_TYPES: str = "jpg,jpeg,png,gif,pdf,doc,docx"

    @property
    def allowed_file_extensions(self) -> list[str]:
        return [ext.strip().lower() for ext in self.ALLOWED_FILE_TYPES.split(",") if ext.strip()]

    # ── WhatsApp (MSG91) ──────────────────────
    MSG91_AUTH_KEY: str = ""
    MSG91_API_URL: str = "https://api.msg91.com/api/v5/whatsapp/whatsapp-outbound-message/bulk/"
    MSG91_INTEGRATED_NUMBER: str = ""
    MSG91_NAMESPACE: str = ""
    MSG91_TIMEOUT_SECONDS: float = 30.0

    # ── Email (SMTP) ──────────────────────────
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_SSL: bool = False
    SENDER_EMAIL: str = ""
    SENDER_NAME: str = "Insurance CRM"

    # ── Automation ────────────────────────────
    AUTOMATION_TIMEZONE: str = "Asia/Kolkata"
    AUTOMATION_RUN_HOUR: int = 9
    RENEWAL_REMINDER_DAYS: int = 30
    REMINDER_DEDUPE_DAYS: int = 7

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    APP_VERSION: str = "1.0.0"
    CORS_ORIGINS: str = "*"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}

settings = Settings()
