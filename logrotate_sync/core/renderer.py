"""
logrotate 配置渲染器

功能:
- 全局配置 (/etc/logrotate.conf) 渲染
- 单应用 drop-in 配置渲染
- 固定指令顺序，输出逐字节稳定（幂等同步的前提）

未设置的可选字段不输出任何指令，尺寸类字段原样透传。
"""

from typing import Dict, List, Optional

from logrotate_sync.config.models import (
    CompressCommand,
    CustomConfig,
    GlobalSettings,
    OSFamily,
)

HEADER = (
    "# Managed by logrotate-sync. Local changes will be overwritten.\n"
    "# See \"man logrotate\" for details.\n"
)

INDENT = "    "

# zstd 不是 logrotate 内置压缩器，需要显式指定命令和扩展名
_COMPRESS_COMMANDS: Dict[CompressCommand, List[str]] = {
    CompressCommand.GZIP: [],
    CompressCommand.ZSTD: [
        "compresscmd /usr/bin/zstd",
        "uncompresscmd /usr/bin/unzstd",
        "compressext .zst",
    ],
}

# 各发行版需要保留在全局配置中的条目
_PRESERVED_STANZAS: Dict[OSFamily, str] = {
    OSFamily.DEBIAN: "",
    OSFamily.RHEL: (
        "# no packages own wtmp and btmp -- we'll rotate them here\n"
        "/var/log/wtmp {\n"
        "    monthly\n"
        "    create 0664 root utmp\n"
        "    minsize 1M\n"
        "    rotate 1\n"
        "}\n"
        "\n"
        "/var/log/btmp {\n"
        "    missingok\n"
        "    monthly\n"
        "    create 0600 root utmp\n"
        "    rotate 1\n"
        "}\n"
    ),
}


def global_directives(settings: GlobalSettings) -> List[str]:
    """按固定顺序生成全局指令列表"""
    lines = [settings.interval.value, f"rotate {settings.rotate_count}"]

    if settings.dateext:
        lines.append("dateext")
    if settings.create:
        lines.append("create")

    if settings.compress:
        lines.append("compress")
        lines.extend(_COMPRESS_COMMANDS[settings.compress_command])
        if settings.compress_options:
            lines.append(f"compressoptions {settings.compress_options}")
        # 未启用压缩时 delaycompress 无意义，直接忽略
        if settings.delaycompress:
            lines.append("delaycompress")

    if settings.size:
        lines.append(f"size {settings.size}")
    if settings.maxsize:
        lines.append(f"maxsize {settings.maxsize}")

    return lines


def render_global(
    settings: GlobalSettings,
    os_family: Optional[OSFamily] = None,
    dropin_dir: str = "/etc/logrotate.d"
) -> str:
    """
    渲染 /etc/logrotate.conf

    Args:
        settings: 全局配置
        os_family: 发行版家族，决定追加哪些保留条目
        dropin_dir: include 的 drop-in 目录

    Returns:
        配置文本
    """
    parts = [HEADER, "\n".join(global_directives(settings)) + "\n", f"include {dropin_dir}\n"]

    preserved = _PRESERVED_STANZAS.get(os_family, "") if os_family else ""
    if preserved:
        parts.append(preserved)

    return "\n".join(parts)


def _toggle(value: Optional[bool], on: str, off: str) -> Optional[str]:
    if value is None:
        return None
    return on if value else off


def custom_directives(config: CustomConfig) -> List[str]:
    """按固定顺序生成单应用指令列表"""
    lines: List[Optional[str]] = []

    if config.interval is not None:
        lines.append(config.interval.value)
    lines.append(f"rotate {config.rotate}")

    if config.create is not None:
        lines.append(f"create {config.create}".rstrip())

    lines.append(_toggle(config.compress, "compress", "nocompress"))
    if config.compress is not False:
        lines.append(_toggle(config.delaycompress, "delaycompress", "nodelaycompress"))

    if config.size:
        lines.append(f"size {config.size}")
    if config.maxsize:
        lines.append(f"maxsize {config.maxsize}")

    lines.append(_toggle(config.missingok, "missingok", "nomissingok"))
    lines.append(_toggle(config.notifempty, "notifempty", "ifempty"))
    lines.append(_toggle(config.copytruncate, "copytruncate", "nocopytruncate"))

    if config.sharedscripts:
        lines.append("sharedscripts")

    return [line for line in lines if line]


def render_custom(config: CustomConfig) -> str:
    """
    渲染单个 drop-in 文件

    Args:
        config: 自定义配置

    Returns:
        配置文本，一个以路径列表开头、花括号包围的条目
    """
    body = [f"{INDENT}{line}" for line in custom_directives(config)]

    if config.postrotate:
        # 脚本内容原样保留，不重新缩进
        body.append(f"{INDENT}postrotate")
        body.extend(config.postrotate.splitlines())
        body.append(f"{INDENT}endscript")

    stanza = [" ".join(config.paths) + " {", *body, "}"]
    return HEADER + "\n" + "\n".join(stanza) + "\n"
