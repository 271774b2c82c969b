from pathlib import Path
from typing import Optional

import yaml

from prdump_core.errors import ArgError

DEFAULT_CONFIG: dict = {
    "max_attempts": 3,  # fetch attempts when the host rate-limits us
    "backoff_seconds": 1.0,  # first retry delay; doubles per attempt
    "max_backoff_seconds": 30.0,
    "timeout": 30,  # per-request timeout in seconds
    "exclude": [],  # fnmatch patterns or directory names dropped from the diff (e.g. "*.lock", "dist/")
    "include_reviews": True,  # list review summaries alongside comments
}


def load_config(config_path: str = ".pr-dump.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .pr-dump.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ArgError(f"Could not read config file {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ArgError(f"Config file {config_path} must contain a mapping.")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    _validate(config)
    return config


def _validate(config: dict) -> None:
    try:
        attempts = int(config["max_attempts"])
        backoff = float(config["backoff_seconds"])
        max_backoff = float(config["max_backoff_seconds"])
        timeout = float(config["timeout"])
    except (TypeError, ValueError) as e:
        raise ArgError(f"Invalid config value: {e}") from e

    if attempts < 1:
        raise ArgError("max_attempts must be at least 1.")
    if backoff < 0 or max_backoff < 0:
        raise ArgError("backoff_seconds and max_backoff_seconds must not be negative.")
    if timeout <= 0:
        raise ArgError("timeout must be positive.")
    exclude = config["exclude"]
    if not isinstance(exclude, list) or not all(isinstance(p, str) for p in exclude):
        raise ArgError("exclude must be a list of string patterns.")
    if not isinstance(config["include_reviews"], bool):
        raise ArgError("include_reviews must be true or false.")
