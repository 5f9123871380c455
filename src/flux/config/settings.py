import os
from dataclasses import dataclass
from pathlib import Path
import json
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
USER_CONFIG_DIR = PROJECT_ROOT / "config"

BACKENDS = ("sqlite", "supabase")


class ConfigurationError(Exception):
    """Raised when settings are missing or contradictory."""
    pass


class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'categories.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = USER_CONFIG_DIR / config_name
        if user_config_path.exists():
            with open(user_config_path, encoding="utf-8") as f:
                return json.load(f)

        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path, encoding="utf-8") as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_app_config() -> Dict[str, Any]:
        """Load general application defaults"""
        return ConfigLoader.load_config('flux.json')

    @staticmethod
    def load_default_categories() -> List[Dict[str, str]]:
        """Load the category seed for new users"""
        return ConfigLoader.load_config('categories.json')['categories']


@dataclass
class Settings:
    """
    Runtime settings resolved from the environment and flux.json.

    Environment variables win over the JSON defaults.
    """
    backend: str = "sqlite"
    db_path: Path = Path("data/flux.db")
    user_id: str = "local-user"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    log_level: str = "WARNING"
    due_horizon_days: int = 7
    recent_transactions: int = 5

    @classmethod
    def from_env(cls, config: Optional[Dict[str, Any]] = None) -> "Settings":
        """
        Build settings from `.env` / process environment.

        Args:
            config: Optional flux.json contents. If None, loads from ConfigLoader.

        Raises:
            ConfigurationError: If the backend is unknown or Supabase credentials are missing
        """
        load_dotenv()

        if config is None:
            config = ConfigLoader.load_app_config()

        settings = cls(
            backend=os.getenv("FLUX_BACKEND", config.get("backend", "sqlite")).lower(),
            db_path=Path(os.getenv("FLUX_DB_PATH", config.get("db_path", "data/flux.db"))),
            user_id=os.getenv("FLUX_USER_ID", config.get("user_id", "local-user")),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            log_level=os.getenv("FLUX_LOG_LEVEL", config.get("log_level", "WARNING")).upper(),
            due_horizon_days=int(config.get("due_horizon_days", 7)),
            recent_transactions=int(config.get("recent_transactions", 5)),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                f"Unknown backend '{self.backend}'. Available backends: {', '.join(BACKENDS)}"
            )

        if self.backend == "supabase" and not (self.supabase_url and self.supabase_key):
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_KEY must be set to use the supabase backend"
            )
