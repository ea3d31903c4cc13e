import os
import yaml
import logging
from pydantic import ValidationError
from .errors import ConfigError
from .models import AppConfig

class ConfigLoader:
    def __init__(self, path: str = None):
        self.config_path = path or os.getenv("DATAMINER_CONFIG") or "config.yaml"
        self.explicit = bool(path or os.getenv("DATAMINER_CONFIG"))

    def load(self) -> AppConfig:
        if os.path.exists(self.config_path):
            logging.info(f"Loading configuration from {self.config_path}.")
            config = self._load_from_file()
        elif self.explicit:
            raise ConfigError(f"Configuration file {self.config_path} not found.")
        else:
            logging.info("No configuration file found, using defaults.")
            config = AppConfig()

        log_level = os.getenv("DATAMINER_LOG_LEVEL")
        if log_level:
            config = config.model_copy(update={"log_level": log_level})
        return config

    def _load_from_file(self) -> AppConfig:
        try:
            with open(self.config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping at the top level.")

        data = {key: self._substitute_values(value) for key, value in data.items()}
        try:
            return AppConfig(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {self.config_path}: {e}") from e

    def _substitute_values(self, value):
        if isinstance(value, list):
            return [self._substitute_env(v) for v in value]
        return self._substitute_env(value)

    def _substitute_env(self, value: str) -> str:
        if not value or not isinstance(value, str):
            return value

        value = value.strip().strip("'").strip('"')
        if value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            result = os.getenv(env_var)
            if result is None:
                logging.warning(f"Environment variable '{env_var}' not found.")
                return value
            return result
        return value
