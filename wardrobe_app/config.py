"""Configuration helpers for the wardrobe tracker core."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_KEY_NAMESPACE = "styleme"
DEFAULT_DATA_DIR = "data"


@dataclass
class AppConfig:
    """Configuration values for the wardrobe app.

    Local persistence defaults to JSON files under ``data_dir`` and the remote
    store defaults to a SQLite database so that the whole stack runs offline.
    Pointing ``remote_backend`` at ``supabase`` switches synchronisation to the
    hosted PostgREST API.
    """

    data_dir: str = DEFAULT_DATA_DIR
    storage_backend: str = "json"
    storage_path: Optional[str] = None
    key_namespace: str = DEFAULT_KEY_NAMESPACE
    remote_backend: str = "sqlite"
    remote_url: Optional[str] = None
    remote_api_key: Optional[str] = None
    remote_db_path: Optional[str] = None
    http_timeout_seconds: float = 10.0
    image_check_timeout_seconds: float = 5.0
    weather_api_key: Optional[str] = None
    default_location: Optional[str] = None
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that secrets such as
        the remote API key can be injected by the runtime environment.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("WARDROBE_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        data_dir = get_value("data_dir", DEFAULT_DATA_DIR)
        storage_backend = get_value("storage_backend", "json")
        storage_path = get_value("storage_path")
        key_namespace = get_value("key_namespace", DEFAULT_KEY_NAMESPACE)
        remote_backend = get_value("remote_backend", "sqlite")
        remote_url = get_value("supabase_url")
        remote_api_key = get_value("supabase_api_key")
        remote_db_path = get_value("remote_db_path")
        http_timeout = get_value("http_timeout_seconds", "10")
        image_timeout = get_value("image_check_timeout_seconds", "5")
        weather_api_key = get_value("openweather_api_key")
        default_location = get_value("default_location")

        return cls(
            data_dir=str(data_dir or DEFAULT_DATA_DIR),
            storage_backend=str(storage_backend or "json").lower(),
            storage_path=storage_path,
            key_namespace=str(key_namespace or DEFAULT_KEY_NAMESPACE),
            remote_backend=str(remote_backend or "sqlite").lower(),
            remote_url=remote_url,
            remote_api_key=remote_api_key,
            remote_db_path=remote_db_path,
            http_timeout_seconds=cls._as_float(http_timeout, 10.0),
            image_check_timeout_seconds=cls._as_float(image_timeout, 5.0),
            weather_api_key=weather_api_key,
            default_location=default_location,
            environment=env_name,
        )

    def resolve_storage_path(self) -> Path:
        """Return the on-device storage location for the configured backend."""

        if self.storage_path:
            return Path(self.storage_path)
        if self.storage_backend == "sqlite":
            return Path(self.data_dir) / "local_store.db"
        return Path(self.data_dir) / "local_store"

    def resolve_remote_db_path(self) -> Path:
        return Path(self.remote_db_path) if self.remote_db_path else Path(self.data_dir) / "remote.db"

    @staticmethod
    def _as_float(raw: Optional[str], default: float) -> float:
        try:
            return float(raw) if raw is not None else default
        except ValueError:
            return default

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
