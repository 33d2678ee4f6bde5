from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage
    DB_PATH: str = "sitewatch.json"

    # AI narrative provider (Gemini generateContent API)
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    AI_MODEL: str = "gemini-1.5-pro"
    AI_TIMEOUT: float = 60.0

    # App
    LOG_LEVEL: str = "WARNING"

    model_config = {"env_prefix": "SITEWATCH_", "env_file": ".env", "extra": "ignore"}


def get_settings() -> Settings:
    return Settings()


settings = get_settings()
