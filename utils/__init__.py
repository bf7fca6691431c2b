"""
Utilities Package - helper modules.

- config: Service TOML loading with built-in fallback
"""

from .config import load_config, get_fallback_config

__all__ = [
    'load_config',
    'get_fallback_config',
]
