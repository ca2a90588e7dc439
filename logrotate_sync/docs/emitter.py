"""
配置文档生成

文档描述的是声明的期望状态，不读取磁盘上的实际文件。
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import BaseModel

from logrotate_sync.config.models import (
    CustomConfig,
    DocFormat,
    GlobalSettings,
    OSFamily,
)
from logrotate_sync.core.synchronizer import managed_filename

logger = structlog.get_logger()

MARKDOWN_FILENAME = "logrotate.md"
JSON_FILENAME = "logrotate.json"

OPERATIONS_GUIDE = """\
## Operations

- Rotation runs from the system scheduler (`/etc/cron.daily/logrotate` or
  `logrotate.timer`); this tool only writes configuration.
- Test a configuration without rotating anything:
  `logrotate --debug /etc/logrotate.conf`
- Force a rotation, e.g. after changing policies:
  `logrotate --force /etc/logrotate.conf`
- Rotation state is kept in `/var/lib/logrotate/status` (Debian) or
  `/var/lib/logrotate/logrotate.status` (RHEL).
- Only files named `managed-*.conf` in `/etc/logrotate.d` are owned by this
  tool. Files installed by packages are never modified.
- The global config as first found is kept at `/etc/logrotate.conf.original`.
"""


class LogrotateDocument(BaseModel):
    """JSON 文档结构，与配置模型一一对应"""
    hostname: str
    os_family: Optional[OSFamily] = None
    generated_at: Optional[datetime] = None
    global_settings: GlobalSettings
    custom_configs: List[CustomConfig]


@dataclass
class DocumentationBundle:
    """生成的文档"""
    markdown: Optional[str] = None
    json: Optional[str] = None


def _yes_no(value: Optional[bool]) -> str:
    if value is None:
        return "inherit"
    return "yes" if value else "no"


def _or_dash(value) -> str:
    return "-" if value in (None, "") else str(value)


def _settings_table(settings: GlobalSettings) -> List[str]:
    rows = [
        ("Managed", _yes_no(settings.manage_global)),
        ("Interval", settings.interval.value),
        ("Rotate count", str(settings.rotate_count)),
        ("Date extension", _yes_no(settings.dateext)),
        ("Create", _yes_no(settings.create)),
        ("Compress", _yes_no(settings.compress)),
        ("Compression command", settings.compress_command.value),
        ("Compression options", _or_dash(settings.compress_options)),
        ("Delay compress", _yes_no(settings.delaycompress and settings.compress)),
        ("Size", _or_dash(settings.size)),
        ("Max size", _or_dash(settings.maxsize)),
    ]
    lines = ["| Setting | Value |", "|---|---|"]
    lines.extend(f"| {name} | {value} |" for name, value in rows)
    return lines


def _custom_section(config: CustomConfig, prefix: str) -> List[str]:
    interval = config.interval.value if config.interval else "inherit"
    lines = [
        f"### {config.name}",
        "",
        f"- File: `{managed_filename(config.name, prefix)}`",
        "- Paths: " + ", ".join(f"`{p}`" for p in config.paths),
        f"- Rotation: {interval}, keep {config.rotate}",
        f"- Size: {_or_dash(config.size)}",
        f"- Max size: {_or_dash(config.maxsize)}",
        f"- Compress: {_yes_no(config.compress)}",
        f"- Delay compress: {_yes_no(False if config.compress is False else config.delaycompress)}",
    ]
    if config.create is not None:
        lines.append(f"- Create: `{('create ' + config.create).strip()}`")
    if config.sharedscripts:
        lines.append("- Shared scripts: yes")
    if config.postrotate:
        lines.extend(["- Postrotate:", "", "```sh", config.postrotate, "```"])
    lines.append("")
    return lines


def render_markdown(
    settings: GlobalSettings,
    custom_configs: List[CustomConfig],
    hostname: str,
    os_family: Optional[OSFamily] = None,
    generated_at: Optional[datetime] = None,
    prefix: str = "managed-"
) -> str:
    """渲染 Markdown 文档"""
    lines = [f"# Logrotate configuration: {hostname}", ""]
    if generated_at is not None:
        lines.append(f"Generated: {generated_at.isoformat(timespec='seconds')}")
    if os_family is not None:
        lines.append(f"OS family: {os_family.value}")
    lines.extend(["", "## Global settings", ""])
    lines.extend(_settings_table(settings))
    lines.extend(["", "## Custom configurations", ""])

    if custom_configs:
        for config in custom_configs:
            lines.extend(_custom_section(config, prefix))
    else:
        lines.extend(["No custom configurations.", ""])

    return "\n".join(lines) + "\n" + OPERATIONS_GUIDE


def render_json(
    settings: GlobalSettings,
    custom_configs: List[CustomConfig],
    hostname: str,
    os_family: Optional[OSFamily] = None,
    generated_at: Optional[datetime] = None
) -> str:
    """渲染 JSON 文档"""
    document = LogrotateDocument(
        hostname=hostname,
        os_family=os_family,
        generated_at=generated_at,
        global_settings=settings,
        custom_configs=custom_configs,
    )
    return document.model_dump_json(indent=2) + "\n"


def emit(
    settings: GlobalSettings,
    custom_configs: List[CustomConfig],
    fmt: DocFormat = DocFormat.BOTH,
    hostname: str = "localhost",
    os_family: Optional[OSFamily] = None,
    generated_at: Optional[datetime] = None,
    prefix: str = "managed-"
) -> DocumentationBundle:
    """
    生成文档

    Args:
        settings: 全局配置
        custom_configs: 自定义配置列表
        fmt: 输出格式
        hostname: 主机名
        os_family: 发行版家族
        generated_at: 生成时间（可选）
        prefix: 受管文件前缀

    Returns:
        DocumentationBundle，未请求的格式为 None
    """
    bundle = DocumentationBundle()

    if fmt in (DocFormat.MARKDOWN, DocFormat.BOTH):
        bundle.markdown = render_markdown(settings, custom_configs, hostname, os_family, generated_at, prefix)
    if fmt in (DocFormat.JSON, DocFormat.BOTH):
        bundle.json = render_json(settings, custom_configs, hostname, os_family, generated_at)

    return bundle


def write_documentation(bundle: DocumentationBundle, output_dir: str, hostname: str) -> Dict[str, str]:
    """
    写出文档到 <output_dir>/<hostname>/

    每次运行都重新写入，不做比较。

    Returns:
        {格式: 文件路径}
    """
    host_dir = Path(output_dir) / hostname
    host_dir.mkdir(parents=True, exist_ok=True)

    written = {}
    if bundle.markdown is not None:
        path = host_dir / MARKDOWN_FILENAME
        path.write_text(bundle.markdown, encoding='utf-8')
        written['markdown'] = str(path)
    if bundle.json is not None:
        path = host_dir / JSON_FILENAME
        path.write_text(bundle.json, encoding='utf-8')
        written['json'] = str(path)

    logger.info("Documentation written", directory=str(host_dir), files=sorted(written))
    return written
