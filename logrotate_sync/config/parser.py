"""
XML 配置文件解析器
"""

import textwrap
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional
import structlog

from logrotate_sync.config.models import (
    LogrotateConfig,
    HostConfig,
    CustomConfig,
    PathsConfig,
    PackagesConfig,
    DocumentationConfig,
    LoggingConfig,
    HistoryConfig,
    Interval,
    CompressCommand,
    OSFamily,
    DocFormat,
)
from logrotate_sync.config.validator import ConfigValidationError

logger = structlog.get_logger()


class ConfigParseError(Exception):
    """配置文件无法解析"""


class ConfigParser:
    """XML 配置文件解析器"""

    def parse(self, config_path: str) -> LogrotateConfig:
        """
        解析 logrotate.xml 配置文件

        Args:
            config_path: 配置文件路径

        Returns:
            LogrotateConfig 对象
        """
        logger.info("Parsing configuration", path=config_path)

        try:
            tree = ET.parse(config_path)
        except (ET.ParseError, OSError) as e:
            raise ConfigParseError(f"{config_path}: {e}") from e

        return self.parse_element(tree.getroot())

    def parse_string(self, text: str) -> LogrotateConfig:
        """解析 XML 字符串"""
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise ConfigParseError(str(e)) from e
        return self.parse_element(root)

    def parse_element(self, root) -> LogrotateConfig:
        """解析根节点"""
        if root.tag != 'logrotate':
            raise ConfigParseError(f"unexpected root element <{root.tag}>, expected <logrotate>")

        version = root.attrib.get('version', '1.0')

        host = self._parse_host(root.find('host'))
        paths = self._parse_paths(root.find('paths'))
        global_overrides = self._parse_global(root.find('global'))
        custom_configs = self._parse_customs(root.findall('custom'))

        packages = self._parse_packages(root.find('packages'))
        documentation = self._parse_documentation(root.find('documentation'))
        logging_config = self._parse_logging(root.find('logging'))
        history = self._parse_history(root.find('history'))

        config = LogrotateConfig(
            version=version,
            host=host,
            global_overrides=global_overrides,
            custom_configs=custom_configs,
            paths=paths,
            packages=packages,
            documentation=documentation,
            logging=logging_config,
            history=history,
        )

        logger.info(
            "Configuration parsed successfully",
            custom_configs=len(custom_configs),
            global_overrides=sorted(global_overrides)
        )
        return config

    def _parse_bool(self, node, attr='start', default=False) -> bool:
        """解析布尔值"""
        if node is None:
            return default
        value = node.attrib.get(attr, 'false' if not default else 'true')
        return value.lower() == 'true'

    def _parse_optional_bool(self, node, attr) -> Optional[bool]:
        """解析可选布尔值，属性不存在时返回 None"""
        value = node.attrib.get(attr)
        if value is None:
            return None
        return value.lower() == 'true'

    def _parse_int(self, node, attr, default=None) -> Optional[int]:
        """解析整数"""
        value = node.attrib.get(attr)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigParseError(f"<{node.tag}> attribute {attr}={value!r} is not an integer")

    def _parse_enum(self, enum_cls, value: str, where: str):
        """解析枚举值，非法值属于校验错误"""
        try:
            return enum_cls(value.lower())
        except ValueError:
            allowed = ", ".join(e.value for e in enum_cls)
            raise ConfigValidationError([f"{where}: invalid value {value!r} (allowed: {allowed})"])

    def _parse_host(self, node) -> HostConfig:
        """解析 host 节点"""
        if node is None:
            return HostConfig()

        os_family = node.attrib.get('osFamily', 'auto')
        return HostConfig(
            hostname=node.attrib.get('name') or None,
            os_family=None if os_family == 'auto' else self._parse_enum(OSFamily, os_family, 'host osFamily'),
        )

    def _parse_paths(self, node) -> PathsConfig:
        """解析 paths 节点"""
        defaults = PathsConfig()
        if node is None:
            return defaults

        return PathsConfig(
            global_config=node.attrib.get('globalConfig', defaults.global_config),
            dropin_dir=node.attrib.get('dropinDir', defaults.dropin_dir),
            prefix=node.attrib.get('prefix', defaults.prefix),
            backup_suffix=node.attrib.get('backupSuffix', defaults.backup_suffix),
        )

    def _parse_global(self, node) -> Dict[str, Any]:
        """
        解析 global 节点

        只返回显式设置的字段，其余由发行版默认值补齐
        """
        overrides: Dict[str, Any] = {}
        if node is None:
            return overrides

        if 'manage' in node.attrib:
            overrides['manage_global'] = self._parse_bool(node, 'manage')
        if 'interval' in node.attrib:
            overrides['interval'] = self._parse_enum(Interval, node.attrib['interval'], 'global interval')
        if 'rotate' in node.attrib:
            overrides['rotate_count'] = self._parse_int(node, 'rotate')
        for attr in ('dateext', 'create'):
            if attr in node.attrib:
                overrides[attr] = self._parse_bool(node, attr)
        for attr in ('size', 'maxsize'):
            if node.attrib.get(attr):
                overrides[attr] = node.attrib[attr]

        compress_node = node.find('compress')
        if compress_node is not None:
            overrides['compress'] = self._parse_bool(compress_node, 'enabled', default=True)
            if 'command' in compress_node.attrib:
                overrides['compress_command'] = self._parse_enum(
                    CompressCommand, compress_node.attrib['command'], 'global compress command'
                )
            if compress_node.attrib.get('options'):
                overrides['compress_options'] = compress_node.attrib['options']
            if 'delay' in compress_node.attrib:
                overrides['delaycompress'] = self._parse_bool(compress_node, 'delay')

        return overrides

    def _parse_customs(self, nodes) -> List[CustomConfig]:
        """解析 custom 节点"""
        configs = []

        for node in nodes:
            name = node.attrib.get('name', '')
            interval = node.attrib.get('interval')

            create_node = node.find('create')
            postrotate_node = node.find('postrotate')

            configs.append(CustomConfig(
                name=name,
                paths=[(p.text or '').strip() for p in node.findall('path')],
                rotate=self._parse_int(node, 'rotate'),
                interval=self._parse_enum(Interval, interval, f"custom {name} interval") if interval else None,
                size=node.attrib.get('size') or None,
                maxsize=node.attrib.get('maxsize') or None,
                compress=self._parse_optional_bool(node, 'compress'),
                delaycompress=self._parse_optional_bool(node, 'delaycompress'),
                create=(create_node.text or '').strip() if create_node is not None else None,
                missingok=self._parse_optional_bool(node, 'missingok'),
                notifempty=self._parse_optional_bool(node, 'notifempty'),
                copytruncate=self._parse_optional_bool(node, 'copytruncate'),
                sharedscripts=self._parse_bool(node, 'sharedscripts'),
                postrotate=self._parse_script(postrotate_node),
            ))

        return configs

    def _parse_script(self, node) -> Optional[str]:
        """解析脚本块，去掉 XML 缩进但保留内部多行结构"""
        if node is None or not (node.text or '').strip():
            return None
        return textwrap.dedent(node.text).strip('\n').rstrip()

    def _parse_packages(self, node) -> PackagesConfig:
        """解析 packages 节点"""
        if node is None:
            return PackagesConfig()

        names = [(p.text or '').strip() for p in node.findall('package')]
        config = PackagesConfig(install=self._parse_bool(node, 'install'))
        if names:
            config.names = names
        return config

    def _parse_documentation(self, node) -> DocumentationConfig:
        """解析 documentation 节点"""
        if node is None:
            return DocumentationConfig()

        fmt = node.attrib.get('format', 'both')
        return DocumentationConfig(
            enabled=self._parse_bool(node, 'enabled', default=True),
            format=self._parse_enum(DocFormat, fmt, 'documentation format'),
            output_dir=node.attrib.get('outputDir', './docs'),
        )

    def _parse_logging(self, node) -> LoggingConfig:
        """解析 logging 节点"""
        if node is None:
            return LoggingConfig()

        return LoggingConfig(
            level=node.attrib.get('level', 'INFO').upper(),
            format=node.attrib.get('format', 'text'),
            file_path=node.attrib.get('file') or None,
        )

    def _parse_history(self, node) -> HistoryConfig:
        """解析 history 节点"""
        if node is None:
            return HistoryConfig()

        defaults = HistoryConfig()
        return HistoryConfig(
            enabled=self._parse_bool(node, 'enabled'),
            path=node.attrib.get('path', defaults.path),
            keep_runs=self._parse_int(node, 'keepRuns', default=defaults.keep_runs),
        )
