from pathlib import Path
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from coachtrend.exceptions import ConfigError

class AppSettings(BaseSettings):
    name: str = "Coachtrend"
    version: str = "1.0.0"

class SecuritySettings(BaseSettings):
    max_upload_mb: int = 5  # Hard cap for request bodies (Content-Length guard)

class LoggingSettings(BaseSettings):
    log_requests: bool = True
    level: str = "INFO"

class StorageSettings(BaseSettings):
    """
    Event source selection:
    - memory (local/dev/tests, empty unless seeded)
    - firestore (per-user document collections)
    """
    backend: str = "memory"  # memory|firestore
    firestore_project_id: Optional[str] = None
    firestore_database: str = "(default)"
    collection_prefix: str = ""
    owner_field: str = "userId"

# Chart kind -> reducer kind used by the trainer dashboard
DEFAULT_REDUCERS = {
    "performance": "average_z_score",
    "self_assessment": "average_score",
    "completion": "completion_rate",
    "adherence": "adherence_rate",
}

class TrendSettings(BaseSettings):
    default_reducers: dict[str, str] = dict(DEFAULT_REDUCERS)
    zero_fill: bool = False

    @field_validator("default_reducers")
    @classmethod
    def _keep_unlisted_defaults(cls, value: dict[str, str]) -> dict[str, str]:
        # Overrides may name only some charts.
        return {**DEFAULT_REDUCERS, **value}

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")
    app: AppSettings = AppSettings()
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()
    storage: StorageSettings = StorageSettings()
    trends: TrendSettings = TrendSettings()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        default_path = Path("config/settings.yaml")
        path = config_path or (default_path if default_path.exists() else None)

        if not path:
            return cls()

        try:
            with open(path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read settings from {path}: {exc}") from exc

        return cls(**config_data)

settings = Settings.load()
