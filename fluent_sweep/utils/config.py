"""配置文件加载与路径管理工具。

批处理的全部参数（物性常数、网格列表、雷诺数序列、求解器路径等）都写在 YAML
配置文件中，本模块负责读取该文件、把相对路径统一解析到配置文件所在目录，
并提供目录创建、数值字段校验等公共能力。
"""

from __future__ import annotations

import typing as t
from pathlib import Path

import yaml


class ConfigError(RuntimeError):
    """配置解析异常。"""


def load_config(config_path: t.Union[str, Path]) -> t.Tuple[dict, Path]:
    """读取 YAML 配置文件并返回配置字典及配置文件所在目录。

    参数:
        config_path: 配置文件路径，可以是相对路径或绝对路径。

    返回:
        (config, base_dir)
        config: 解析后的配置字典，内部并未做路径展开。
        base_dir: 配置文件所在目录，供后续路径解析使用。

    异常:
        ConfigError: 当文件不存在、解析失败或顶层不是映射时抛出。
    """

    path = Path(config_path).expanduser().resolve()
    if not path.is_file():
        raise ConfigError(f"配置文件不存在: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - YAML 库自身的异常难以稳定复现
        raise ConfigError(f"配置文件解析失败: {exc}") from exc

    if not isinstance(config, dict):
        raise ConfigError(f"配置文件顶层必须是映射: {path}")

    return config, path.parent


def resolve_path(base_dir: Path, target: t.Union[str, Path]) -> Path:
    """将配置中的路径字段统一转换为绝对路径。

    参数:
        base_dir: 配置文件所在目录。
        target: 配置项中的路径，可以为相对路径或绝对路径。

    返回:
        转换后的绝对路径。
    """

    path = Path(target).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return path


def ensure_directory(path: t.Union[str, Path]) -> Path:
    """确保目录存在，不存在则递归创建。"""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def require_section(config: dict, name: str) -> dict:
    """取出配置中的子段落，缺失或类型不符时抛出 :class:`ConfigError`。"""

    section = config.get(name)
    if not isinstance(section, dict):
        raise ConfigError(f"配置缺少 '{name}' 段落")
    return section


def optional_section(config: dict, name: str) -> dict:
    """取出可省略的子段落，缺失时返回空字典。"""

    section = config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"配置段落 '{name}' 必须是映射")
    return section


def path_value(section: dict, key: str, default: str) -> str:
    """读取路径字段，只接受字符串。"""

    value = section.get(key, default)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"字段 '{key}' 必须是非空路径字符串: {value!r}")
    return value


def positive_float(section: dict, key: str) -> float:
    """读取必须为正数的浮点字段，例如密度、粘度与水力直径。"""

    if key not in section:
        raise ConfigError(f"配置缺少字段 '{key}'")
    try:
        value = float(section[key])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"字段 '{key}' 不是合法数值: {section[key]!r}") from exc
    if value <= 0:
        raise ConfigError(f"字段 '{key}' 必须为正数，当前为 {value}")
    return value
