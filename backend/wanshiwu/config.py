from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "萬事屋平台"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://wanshiwu:wanshiwu_pass@db:5432/wanshiwu"
    DB_TIMEOUT_SECONDS: float = 10.0

    # Identity provider (local, firebase)
    AUTH_PROVIDER: str = "local"

    # JWT (local provider)
    JWT_SECRET_KEY: str = "change-this-to-a-secure-random-string"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 一日

    # Firebase Auth
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_JWKS_URL: str = (
        "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
    )
    IDENTITY_TIMEOUT_SECONDS: float = 5.0
    JWKS_CACHE_SECONDS: int = 60 * 60

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    model_config = {"env_file": ".env", "case_sensitive": True}


settings = Settings()
