"""
Simple config loader for backend components.
Reads directly from the service TOML config.

@.architecture
Incoming: config/service.toml, config/settings.py --- {TOML file, load_config calls}
Processing: load_config(), get_fallback_config() --- {2 jobs: config_loading, fallback_generation}
Outgoing: config/settings.py --- {Dict[str, Any] config data}
"""

import toml
from pathlib import Path
from typing import Dict, Any, Optional

from monitoring import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "service.toml"


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from the service TOML file."""
    config_file = Path(config_file) if config_file is not None else DEFAULT_CONFIG_FILE
    try:
        with open(config_file, 'r') as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning(f"Failed to load service config {config_file}: {e}")
        return get_fallback_config()


def get_fallback_config() -> Dict[str, Any]:
    """Fallback configuration if TOML file can't be loaded."""
    return {
        "SERVER": {
            "bind_host": "127.0.0.1",
            "bind_port": 8080,
        },
        "STORAGE": {
            "files_db_path": "./data/files.db",
            "auth_db_path": "./data/auth.db",
            "max_upload_bytes": 1024 * 1024,
        },
        "AUTH": {
            "username_min_length": 3,
            "username_max_length": 20,
            "password_min_length": 8,
            "bcrypt_rounds": 12,
        },
    }
