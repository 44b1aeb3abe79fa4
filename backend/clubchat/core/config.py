from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./clubchat.db", description="Database connection string")
    SQL_ECHO: bool = Field(default=False, description="Log every SQL statement")
    SECRET_KEY: str = Field(default="your-secret-key-change-this-in-production", description="JWT secret key")
    ALGORITHM: str = Field(default="HS256", description="Algorithm for JWT (e.g., HS256)")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60, description="How long (in minutes) an access token is valid")
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Origins allowed for both REST and Socket.IO",
    )
    SOCKETIO_PATH: str = Field(default="socket.io", description="Mount path of the Socket.IO endpoint")
    SOCKETIO_REDIS_URL: Optional[str] = Field(
        default=None,
        description="Redis URL for cross-process room fan-out; in-memory rooms when unset",
    )
    LOG_LEVEL: str = Field(default="INFO", description="Level for the clubchat logger")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
