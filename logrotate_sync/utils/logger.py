"""
日志系统配置
"""

import sys
import logging
import structlog
from pathlib import Path
from typing import Optional


LOG_LEVEL_MAP = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
}

# 当前打开的日志文件，重复配置时复用或关闭
_log_stream = None


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None
):
    """
    配置结构化日志系统

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)
        log_format: 日志格式 (text, json)
        log_file: 日志文件路径（可选，设置后日志写入文件而非 stderr）
    """
    # 处理器列表
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    # 格式化器
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=not log_file and sys.stderr.isatty())
        )

    if log_file:
        logger_factory = structlog.WriteLoggerFactory(file=_open_log_file(log_file))
    else:
        close_log_file()
        # 标准输出留给运行摘要
        logger_factory = structlog.PrintLoggerFactory(file=sys.stderr)

    # 配置
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            LOG_LEVEL_MAP.get(level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=False,
    )

    logger = structlog.get_logger()
    logger.debug("Logging configured", level=level, format=log_format, file=log_file)

    return logger


def _open_log_file(log_file: str):
    """打开日志文件，同一路径只打开一次"""
    global _log_stream

    path = Path(log_file)
    if _log_stream is not None and not _log_stream.closed and Path(_log_stream.name) == path:
        return _log_stream

    close_log_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    _log_stream = open(path, 'a', encoding='utf-8')
    return _log_stream


def close_log_file():
    """关闭当前日志文件（如有）"""
    global _log_stream

    if _log_stream is not None:
        _log_stream.close()
        _log_stream = None
