import os
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

# The .env file lives at the project root, two levels above the kollector package.
_config_dir = os.path.dirname(os.path.abspath(__file__))
_backend_dir = os.path.dirname(os.path.dirname(_config_dir))
_project_root = os.path.dirname(_backend_dir)
_dotenv_path = os.path.join(_project_root, '.env')


class Settings(BaseSettings):
    DATABASE_URL: str
    ENVIRONMENT: str = "Production"
    APP_VERSION: str = "1.0.0"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # JWT settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Google sign-in
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_ALLOWED_AUDIENCES: str = ""
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"
    ENABLE_BOOTSTRAP: bool = False
    BOOTSTRAP_SECRET: str = ""

    # Local image storage
    IMAGES_PATH: str = "wwwroot/images"

    # Discogs
    DISCOGS_BASE_URL: str = "https://api.discogs.com"
    DISCOGS_TOKEN: str = ""
    DISCOGS_USER_AGENT: str = "KollectorScum/1.0"
    DISCOGS_TIMEOUT_SECONDS: float = 30.0
    DISCOGS_IMPORT_DELAY_SECONDS: float = 1.0

    # Natural language query
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-4o"

    model_config = SettingsConfigDict(
        env_file=_dotenv_path,
        env_file_encoding='utf-8',
        extra='ignore'
    )

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def google_audiences(self) -> List[str]:
        audiences = [a.strip() for a in self.GOOGLE_ALLOWED_AUDIENCES.split(",") if a.strip()]
        if self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_ID not in audiences:
            audiences.append(self.GOOGLE_CLIENT_ID)
        return audiences


settings = Settings()
