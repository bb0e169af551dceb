from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Local SQLite (fixer rules) ---
    sqlite_db_path: Path = Path("data/impfix.db")

    # --- Web interface ---
    web_host: str = "127.0.0.1"
    web_port: int = 8080
    web_username: str = "admin"
    web_password: str = "admin"

    # --- Logging ---
    log_level: str = "INFO"

    @property
    def sqlite_url(self) -> str:
        return f"sqlite:///{self.sqlite_db_path}"


settings = Settings()
