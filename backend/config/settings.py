from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    firebase_database_url: str = ""
    firebase_auth_token: str = ""
    store_timeout_seconds: float = 10.0
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
