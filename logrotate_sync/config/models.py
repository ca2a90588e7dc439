"""
配置数据模型
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Interval(Enum):
    """轮转周期"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CompressCommand(Enum):
    """压缩命令"""
    GZIP = "gzip"
    ZSTD = "zstd"


class OSFamily(Enum):
    """操作系统家族"""
    DEBIAN = "debian"
    RHEL = "rhel"


class DocFormat(Enum):
    """文档输出格式"""
    MARKDOWN = "markdown"
    JSON = "json"
    BOTH = "both"


@dataclass
class GlobalSettings:
    """全局轮转配置（/etc/logrotate.conf）"""
    interval: Interval = Interval.WEEKLY
    rotate_count: int = 4
    dateext: bool = False
    create: bool = True
    compress: bool = False
    compress_command: CompressCommand = CompressCommand.GZIP
    compress_options: Optional[str] = None
    delaycompress: bool = False
    size: Optional[str] = None  # 例如 "100M"，原样输出
    maxsize: Optional[str] = None
    manage_global: bool = True


@dataclass
class CustomConfig:
    """单个应用的轮转配置（/etc/logrotate.d/managed-<name>.conf）"""
    name: str
    paths: List[str]
    rotate: int
    interval: Optional[Interval] = None
    size: Optional[str] = None
    maxsize: Optional[str] = None
    # None 表示继承全局配置，不输出指令
    compress: Optional[bool] = None
    delaycompress: Optional[bool] = None
    create: Optional[str] = None  # "0640 root adm"；空字符串输出单独的 create
    missingok: Optional[bool] = None
    notifempty: Optional[bool] = None
    copytruncate: Optional[bool] = None
    sharedscripts: bool = False
    postrotate: Optional[str] = None


@dataclass
class ManagedFile:
    """受管文件：路径 + 期望内容"""
    path: str
    content: str
    owned: bool = True


@dataclass
class HostConfig:
    """主机配置"""
    hostname: Optional[str] = None  # 默认取 socket.gethostname()
    os_family: Optional[OSFamily] = None  # None 表示自动检测


@dataclass
class PathsConfig:
    """文件路径配置"""
    global_config: str = "/etc/logrotate.conf"
    dropin_dir: str = "/etc/logrotate.d"
    prefix: str = "managed-"
    backup_suffix: str = ".original"


@dataclass
class PackagesConfig:
    """软件包配置"""
    install: bool = False
    names: List[str] = field(default_factory=lambda: ["logrotate", "zstd"])


@dataclass
class DocumentationConfig:
    """文档生成配置"""
    enabled: bool = True
    format: DocFormat = DocFormat.BOTH
    output_dir: str = "./docs"


@dataclass
class LoggingConfig:
    """日志配置"""
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    format: str = "text"  # text, json
    file_path: Optional[str] = None


@dataclass
class HistoryConfig:
    """运行历史配置"""
    enabled: bool = False
    path: str = "/var/lib/logrotate-sync/history.db"
    keep_runs: int = 100  # 保留的最大运行记录数


@dataclass
class LogrotateConfig:
    """logrotate-sync 主配置"""
    version: str
    host: HostConfig
    # 仅包含配置文件中显式设置的全局字段，与发行版默认值合并后使用
    global_overrides: Dict[str, Any]
    custom_configs: List[CustomConfig]
    paths: PathsConfig = field(default_factory=lambda: PathsConfig())
    packages: PackagesConfig = field(default_factory=lambda: PackagesConfig())
    documentation: DocumentationConfig = field(default_factory=lambda: DocumentationConfig())
    logging: LoggingConfig = field(default_factory=lambda: LoggingConfig())
    history: HistoryConfig = field(default_factory=lambda: HistoryConfig())
