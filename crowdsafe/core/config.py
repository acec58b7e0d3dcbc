# crowdsafe/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    DATABASE_URL: str = "sqlite:///./crowdsafe.db"
    SEED_VENUES: bool = True

    # Auth (tokens are issued by the surrounding platform)
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    APPROVER_ROLES: str = "police"

    # LLM analysis
    ANTHROPIC_API_KEY: str = ""
    LLM_ANALYSIS_ENABLED: bool = True
    LLM_MODEL: str = "claude-haiku-4-5-20251001"
    LLM_MAX_TOKENS: int = 1500

    # Circuit Breaker
    CIRCUIT_BREAKER_FAIL_MAX: int = 5
    CIRCUIT_BREAKER_TIMEOUT: int = 60

    # Risk engine
    DEFAULT_VENUE_CAPACITY: int = 10000

    LOG_LEVEL: str = "INFO"

    @property
    def approver_roles(self) -> set[str]:
        return {
            role.strip().lower()
            for role in self.APPROVER_ROLES.split(",")
            if role.strip()
        }

    @property
    def llm_enabled(self) -> bool:
        """LLM analysis runs only when switched on and a key is configured."""
        return self.LLM_ANALYSIS_ENABLED and bool(self.ANTHROPIC_API_KEY)


settings = Settings()
