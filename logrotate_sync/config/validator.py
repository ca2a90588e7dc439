"""
配置校验

所有校验在任何文件写入之前完成，失败即中止整个主机的运行。
"""

import re
from typing import List

import structlog

from logrotate_sync.config.models import (
    CompressCommand,
    CustomConfig,
    GlobalSettings,
    Interval,
    PathsConfig,
)

logger = structlog.get_logger()

# 名称会直接拼进文件名，只允许安全字符
SAFE_NAME_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')


class ConfigValidationError(ValueError):
    """配置校验失败"""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


def validate_global(settings: GlobalSettings) -> List[str]:
    """校验全局配置，返回问题列表"""
    problems = []

    if not isinstance(settings.interval, Interval):
        problems.append(f"global: invalid interval {settings.interval!r}")
    if not isinstance(settings.compress_command, CompressCommand):
        problems.append(f"global: invalid compress command {settings.compress_command!r}")
    if isinstance(settings.rotate_count, bool) or not isinstance(settings.rotate_count, int) \
            or settings.rotate_count < 1:
        problems.append(f"global: rotate count must be a positive integer, got {settings.rotate_count!r}")

    if settings.delaycompress and not settings.compress:
        logger.warning(
            "delaycompress has no effect without compress, ignoring",
            scope="global"
        )

    return problems


def validate_custom_configs(configs: List[CustomConfig]) -> List[str]:
    """校验自定义配置列表，返回问题列表"""
    problems = []
    seen = set()

    for index, config in enumerate(configs):
        label = config.name or f"#{index}"

        if not config.name or not SAFE_NAME_PATTERN.match(config.name):
            problems.append(f"custom {label}: name must match {SAFE_NAME_PATTERN.pattern}")
        elif config.name in seen:
            problems.append(f"custom {label}: duplicate name")
        seen.add(config.name)

        if not config.paths or any(not p.strip() for p in config.paths):
            problems.append(f"custom {label}: paths must be a non-empty list of patterns")

        if isinstance(config.rotate, bool) or not isinstance(config.rotate, int) or config.rotate < 0:
            problems.append(f"custom {label}: rotate must be a non-negative integer, got {config.rotate!r}")

        if config.interval is not None and not isinstance(config.interval, Interval):
            problems.append(f"custom {label}: invalid interval {config.interval!r}")

        if config.delaycompress and config.compress is False:
            logger.warning(
                "delaycompress has no effect without compress, ignoring",
                scope=label
            )

    return problems


def validate(settings: GlobalSettings, configs: List[CustomConfig]):
    """
    校验完整的期望状态

    Raises:
        ConfigValidationError: 存在任何问题时
    """
    problems = validate_global(settings) + validate_custom_configs(configs)
    if problems:
        logger.error("Configuration validation failed", problems=problems)
        raise ConfigValidationError(problems)


def validate_paths(paths: PathsConfig):
    """
    校验路径配置

    前缀是所有权边界，不能为空，也不能包含目录分隔符。

    Raises:
        ConfigValidationError: 存在任何问题时
    """
    problems = []

    if not paths.prefix:
        problems.append("paths: prefix must not be empty")
    elif '/' in paths.prefix or paths.prefix in ('.', '..'):
        problems.append(f"paths: prefix must be a plain file name prefix, got {paths.prefix!r}")

    if not paths.backup_suffix or '/' in paths.backup_suffix:
        problems.append(f"paths: invalid backup suffix {paths.backup_suffix!r}")

    if not paths.dropin_dir:
        problems.append("paths: dropin directory must not be empty")
    if not paths.global_config:
        problems.append("paths: global config path must not be empty")

    if problems:
        logger.error("Path configuration invalid", problems=problems)
        raise ConfigValidationError(problems)
