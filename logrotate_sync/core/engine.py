"""
主机运行引擎

一次运行的完整流程:
校验 → （可选）安装软件包 → 渲染 → 同步全局配置 → 同步 drop-in
→ 生成文档 → 记录历史
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import structlog
from sqlalchemy.exc import SQLAlchemyError

from logrotate_sync.config.defaults import resolve_global_settings
from logrotate_sync.config.models import (
    CustomConfig,
    GlobalSettings,
    LogrotateConfig,
    ManagedFile,
    OSFamily,
)
from logrotate_sync.config.validator import validate, validate_paths
from logrotate_sync.core.packages import PackageManager, PackageResult
from logrotate_sync.core.renderer import render_custom, render_global
from logrotate_sync.core.synchronizer import (
    ConfigSynchronizer,
    FileError,
    SyncResult,
    managed_filename,
    scan_managed,
)
from logrotate_sync.docs.emitter import emit, write_documentation
from logrotate_sync.storage.history import HistoryStore
from logrotate_sync.utils.platform import OS_RELEASE_PATH, detect_os_family, get_hostname

logger = structlog.get_logger()


@dataclass
class RunReport:
    """一次主机运行的报告"""
    hostname: str
    os_family: OSFamily
    settings: GlobalSettings
    sync: SyncResult
    packages: Optional[PackageResult] = None
    documentation: Dict[str, str] = field(default_factory=dict)
    run_id: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.sync.failed or bool(self.packages and self.packages.failed)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        data = {
            'hostname': self.hostname,
            'os_family': self.os_family.value,
            'failed': self.failed,
            'sync': self.sync.to_dict(),
            'documentation': dict(self.documentation),
        }
        if self.packages is not None:
            data['packages'] = {
                'installed': self.packages.installed,
                'present': self.packages.present,
                'errors': self.packages.errors,
            }
        if self.run_id is not None:
            data['run_id'] = self.run_id
        return data


class LogrotateEngine:
    """logrotate-sync 主引擎"""

    def __init__(
        self,
        config: LogrotateConfig,
        dry_run: bool = False,
        os_release_path: str = OS_RELEASE_PATH
    ):
        """
        初始化引擎

        Args:
            config: 主配置
            dry_run: 检查模式，不修改任何文件
            os_release_path: os-release 路径（自动检测发行版时使用）

        Raises:
            ConfigValidationError: 路径配置非法
        """
        self.config = config
        self.dry_run = dry_run

        self.hostname = config.host.hostname or get_hostname()
        self.os_family = config.host.os_family or detect_os_family(os_release_path)

        paths = config.paths
        validate_paths(paths)
        self.synchronizer = ConfigSynchronizer(
            dropin_dir=paths.dropin_dir,
            prefix=paths.prefix,
            global_config=paths.global_config,
            backup_suffix=paths.backup_suffix,
            dry_run=dry_run,
        )

        logger.info(
            "Engine initialized",
            hostname=self.hostname,
            os_family=self.os_family.value,
            custom_configs=len(config.custom_configs),
            dry_run=dry_run
        )

    def resolve_settings(self) -> GlobalSettings:
        """合并默认值并校验，失败时抛出 ConfigValidationError"""
        settings = resolve_global_settings(self.os_family, self.config.global_overrides)
        validate(settings, self.config.custom_configs)
        return settings

    def desired_files(self, custom_configs: List[CustomConfig]) -> List[ManagedFile]:
        """由自定义配置生成期望的 drop-in 文件"""
        paths = self.config.paths
        return [
            ManagedFile(
                path=str(Path(paths.dropin_dir) / managed_filename(config.name, paths.prefix)),
                content=render_custom(config),
            )
            for config in custom_configs
        ]

    def install_packages(self) -> PackageResult:
        """确保 logrotate / zstd 已安装"""
        manager = PackageManager(self.os_family, dry_run=self.dry_run)
        return manager.ensure_installed(self.config.packages.names)

    def run(self, install_packages: Optional[bool] = None) -> RunReport:
        """
        执行一次完整运行

        Args:
            install_packages: 覆盖配置中的 packages.install

        Returns:
            RunReport

        Raises:
            ConfigValidationError: 配置非法，此时没有任何文件被修改
        """
        settings = self.resolve_settings()
        custom_configs = self.config.custom_configs

        if install_packages is None:
            install_packages = self.config.packages.install

        packages = None
        if install_packages:
            packages = self.install_packages()

        # 全局配置
        global_content = render_global(settings, self.os_family, self.config.paths.dropin_dir)
        result = self.synchronizer.sync_global(settings, global_content)

        # drop-in 配置，快照显式传入
        snapshot = scan_managed(self.config.paths.dropin_dir, self.config.paths.prefix)
        result.merge(self.synchronizer.sync(self.desired_files(custom_configs), snapshot))

        report = RunReport(
            hostname=self.hostname,
            os_family=self.os_family,
            settings=settings,
            sync=result,
            packages=packages,
        )

        if self.config.documentation.enabled and not self.dry_run:
            try:
                report.documentation = self._write_documentation(settings, custom_configs)
            except OSError as e:
                logger.error("Failed to write documentation", error=str(e))
                result.errors.append(FileError(self.config.documentation.output_dir, 'write', str(e)))

        if self.config.history.enabled:
            report.run_id = self._record_history(result)

        if report.failed:
            logger.error(
                "Run finished with errors",
                hostname=self.hostname,
                failed_files=[e.path for e in result.errors],
                failed_packages=sorted(packages.errors) if packages else []
            )
        else:
            logger.info(
                "Run finished",
                hostname=self.hostname,
                changed=result.changed,
                written=len(result.written),
                deleted=len(result.deleted)
            )

        return report

    def _write_documentation(self, settings: GlobalSettings, custom_configs: List[CustomConfig]) -> Dict[str, str]:
        """生成并写出文档"""
        doc_config = self.config.documentation
        bundle = emit(
            settings,
            custom_configs,
            doc_config.format,
            hostname=self.hostname,
            os_family=self.os_family,
            generated_at=datetime.now().replace(microsecond=0),
            prefix=self.config.paths.prefix,
        )
        return write_documentation(bundle, doc_config.output_dir, self.hostname)

    def _record_history(self, result: SyncResult) -> Optional[int]:
        """记录运行历史，失败不影响本次运行结果"""
        try:
            store = HistoryStore(self.config.history.path)
            run_id = store.record_run(self.hostname, result)
            store.cleanup(self.config.history.keep_runs)
            return run_id
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to record run history", path=self.config.history.path, error=str(e))
            return None
