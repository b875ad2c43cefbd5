"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_CLIENT: str = "postgres"  # postgres or sqlite
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "cloudvault"
    DATABASE_USERNAME: str = "postgres"
    DATABASE_PASSWORD: str = ""
    DATABASE_SSL: bool = False

    @property
    def DATABASE_URL(self) -> str:
        """Construct database URL from components"""
        if self.DATABASE_CLIENT == "sqlite":
            return f"sqlite:///{self.DATABASE_NAME}"
        url = (
            f"postgresql://{self.DATABASE_USERNAME}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )
        if self.DATABASE_SSL:
            url += "?sslmode=require"
        return url

    # API
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "CloudVault API"
    DEBUG: bool = True
    ALLOWED_ORIGINS: str = "*"
    PUBLIC_BASE_URL: str = "http://localhost:8001"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from string"""
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Firebase (Auth only)
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_CREDENTIALS_PATH: str = "firebase-admin-sdk.json"

    # Google Gemini AI
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT_SECONDS: float = 60.0

    # Blob storage: "filerunner" (external) or "local" (UPLOAD_DIR)
    BLOB_BACKEND: str = "filerunner"
    UPLOAD_DIR: str = "./uploads"
    MAX_FILE_SIZE: int = 26214400  # 25MB
    FILERUNNER_BASE_URL: str = "http://localhost:8000"
    FILERUNNER_API_KEY: str = ""

    # Content retrieval for on-demand analysis
    CONTENT_FETCH_TIMEOUT_SECONDS: float = 30.0
    CONTENT_PROXY_URL: str = "https://api.allorigins.win/raw?url={url}"

    # Remote printing
    DEVICE_HEARTBEAT_INTERVAL_SECONDS: float = 60.0
    DEVICE_STALENESS_FACTOR: float = 2.5

    @property
    def DEVICE_ONLINE_THRESHOLD_SECONDS(self) -> float:
        """Heartbeat age below which a device is considered online"""
        return self.DEVICE_HEARTBEAT_INTERVAL_SECONDS * self.DEVICE_STALENESS_FACTOR

    # Human chat
    CHAT_MESSAGE_WINDOW: int = 100

    # Vault sessions
    SESSION_IDLE_TIMEOUT_MINUTES: int = 120
    SESSION_SWEEP_INTERVAL_MINUTES: int = 10

    # Rate limits
    SUMMARY_RATE_LIMIT: str = "20/minute"
    ASSISTANT_RATE_LIMIT: str = "30/minute"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8001

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
