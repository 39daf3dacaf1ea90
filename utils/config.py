"""
config.py

Configuration management for BannerWatch.
Loads settings from config.yaml and provides access throughout the application.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

CONFIG_ENV_VAR = "BANNERWATCH_CONFIG"

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class ConfigManager:
    """
    Singleton configuration manager that loads and provides access to settings.
    """
    
    _instance = None
    _config: Dict[str, Any] = {}
    
    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._load_config()
        return cls._instance

    @staticmethod
    def _find_config() -> Optional[Path]:
        """Return the first config.yaml found in env, cwd, then project root."""
        candidates = []
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            candidates.append(Path(env_path))
        candidates.append(Path("config.yaml"))
        candidates.append(_PROJECT_ROOT / "config.yaml")

        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None
    
    def _load_config(self) -> None:
        """Load configuration from config.yaml file."""
        config_path = self._find_config()
        
        if config_path is None:
            raise FileNotFoundError(
                "config.yaml not found. Please create it from the template "
                f"or point {CONFIG_ENV_VAR} at one."
            )
        
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}")

        self.path = config_path
    
    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.
        
        Example:
            config.get("tracking.asset_tracking")
            config.get("paths.database")
        """
        keys = key_path.split(".")
        value = self._config
        
        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default
    
    def get_all(self) -> Dict[str, Any]:
        """Return the entire configuration dictionary."""
        return self._config.copy()


# Create a global instance for easy import
config = ConfigManager()
