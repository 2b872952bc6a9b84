import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "store": "sqlite",  # "sqlite" | "memory" | "gist"
    "store_path": ".codecraft.db",
    "gist_id": None,
    "recent_limit": 10,  # default row count for `codecraft reviews --recent`
    "identity": None,  # identity-provider subject id of the signed-in user
}

STORE_TYPES = ("sqlite", "memory", "gist")


def load_config(config_path: str = ".codecraft.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .codecraft.yml in the current directory
      3. CODECRAFT_IDENTITY from the environment
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if os.environ.get("CODECRAFT_IDENTITY"):
        config["identity"] = os.environ["CODECRAFT_IDENTITY"]

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["store"] not in STORE_TYPES:
        raise ValueError(f"Unknown store {config['store']!r}. Choose one of: {', '.join(STORE_TYPES)}.")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config
