"""通用工具子模块。"""

from .config import ConfigError, ensure_directory, load_config, resolve_path

__all__ = [
    "ConfigError",
    "ensure_directory",
    "load_config",
    "resolve_path",
]
