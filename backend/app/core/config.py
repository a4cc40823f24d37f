from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file (one level above ./backend/)
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    PROJECT_NAME: str = "LUXE STANDARD"
    SITE_NAME: str = "LUXE STANDARD"
    SITE_URL: str = "http://localhost:8000"
    SITE_DESCRIPTION: str = "Curated excellence for the discerning professional."

    # Shared secret for the admin API (X-Admin-Secret header)
    ADMIN_SECRET: str = "changethis"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    DATABASE_URL: str = "sqlite:///./luxe.db"

    # "memory" keeps entries in-process; "database" shares them through cache_entries
    CACHE_BACKEND: Literal["memory", "database"] = "database"

    LLM_API_KEY: str = ""
    LLM_BASE_URL: str | None = None
    MODEL_DEFAULT: str = "gpt-4o-mini"
    GENERATION_MAX_TOKENS: int = 2048
    GENERATION_TEMPERATURE: float = 0.75
    ENFORCE_MIN_WORD_COUNT: bool = True

    AUTOGENERATE_LIMIT: int = 3


settings = Settings()  # type: ignore
