"""
受管文件同步器

功能:
- 扫描 drop-in 目录，按前缀筛选受管文件
- 内容不同才写入（幂等）
- 清理已从期望状态移除的受管文件
- 全局配置首次写入前备份一次
- 原子写入（临时文件 + replace）

前缀规则是唯一的安全边界：不带前缀的文件永远不会被创建、修改或删除。
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional
import structlog

from logrotate_sync.config.models import GlobalSettings, ManagedFile
from logrotate_sync.core.renderer import HEADER

logger = structlog.get_logger()

FILE_MODE = 0o644
TEMP_SUFFIX = ".tmp"


@dataclass
class FileError:
    """单个文件的操作失败"""
    path: str
    action: str  # read, write, delete, backup, refuse
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'path': self.path, 'action': self.action, 'message': self.message}


@dataclass
class SyncResult:
    """同步结果"""
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    backed_up: List[str] = field(default_factory=list)
    errors: List[FileError] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def changed(self) -> bool:
        return bool(self.written or self.deleted or self.backed_up)

    def merge(self, other: "SyncResult") -> "SyncResult":
        """合并另一个结果（返回自身）"""
        self.written.extend(other.written)
        self.skipped.extend(other.skipped)
        self.deleted.extend(other.deleted)
        self.backed_up.extend(other.backed_up)
        self.errors.extend(other.errors)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            'written': list(self.written),
            'skipped': list(self.skipped),
            'deleted': list(self.deleted),
            'backed_up': list(self.backed_up),
            'errors': [e.to_dict() for e in self.errors],
            'dry_run': self.dry_run,
            'failed': self.failed,
        }


def is_owned(filename: str, prefix: str) -> bool:
    """文件名是否属于本工具（仅凭前缀判断）"""
    return bool(prefix) and filename.startswith(prefix)


def managed_filename(name: str, prefix: str = "managed-") -> str:
    """自定义配置名称对应的 drop-in 文件名"""
    return f"{prefix}{name}.conf"


def scan_managed(directory: str, prefix: str) -> FrozenSet[str]:
    """
    扫描目录，返回当前存在的受管文件名快照

    Args:
        directory: drop-in 目录
        prefix: 受管前缀

    Returns:
        文件名集合；目录不存在时为空集合
    """
    path = Path(directory)
    if not path.is_dir():
        logger.debug("Drop-in directory missing, empty snapshot", path=directory)
        return frozenset()

    names = frozenset(
        entry.name for entry in path.iterdir()
        if is_owned(entry.name, prefix) and (entry.is_file() or entry.is_symlink())
    )
    logger.debug("Managed files scanned", path=directory, count=len(names))
    return names


class ConfigSynchronizer:
    """受管文件同步器"""

    def __init__(
        self,
        dropin_dir: str = "/etc/logrotate.d",
        prefix: str = "managed-",
        global_config: str = "/etc/logrotate.conf",
        backup_suffix: str = ".original",
        dry_run: bool = False
    ):
        """
        初始化同步器

        Args:
            dropin_dir: drop-in 目录
            prefix: 受管文件前缀
            global_config: 全局配置路径
            backup_suffix: 全局配置备份后缀
            dry_run: 检查模式，只计算不修改
        """
        if not prefix:
            raise ValueError("managed prefix must not be empty")

        self.dropin_dir = Path(dropin_dir)
        self.prefix = prefix
        self.global_config = Path(global_config)
        self.backup_path = Path(f"{global_config}{backup_suffix}")
        self.dry_run = dry_run

    def sync(self, desired: Iterable[ManagedFile], snapshot: FrozenSet[str]) -> SyncResult:
        """
        将 drop-in 目录中的受管文件收敛到期望状态

        Args:
            desired: 期望存在的文件
            snapshot: scan_managed() 得到的当前受管文件名

        Returns:
            SyncResult
        """
        result = SyncResult(dry_run=self.dry_run)
        desired_names = set()

        for managed in desired:
            path = Path(managed.path)

            if not managed.owned or path.parent != self.dropin_dir or not is_owned(path.name, self.prefix):
                logger.error(
                    "Refusing to manage file outside ownership scope",
                    path=str(path),
                    prefix=self.prefix
                )
                result.errors.append(FileError(str(path), 'refuse', f"not a {self.prefix}* file in {self.dropin_dir}"))
                continue

            desired_names.add(path.name)
            self._write_if_different(path, managed.content, result)

        for name in sorted(snapshot - desired_names):
            # 再次确认前缀，快照可能来自调用方
            if not is_owned(name, self.prefix):
                continue
            self._delete(self.dropin_dir / name, result)

        logger.info(
            "Drop-in sync completed",
            written=len(result.written),
            skipped=len(result.skipped),
            deleted=len(result.deleted),
            errors=len(result.errors),
            dry_run=self.dry_run
        )
        return result

    def sync_global(self, settings: GlobalSettings, content: str) -> SyncResult:
        """
        同步全局配置

        manage_global 为 False 时不做任何操作（包括读取）。

        Args:
            settings: 全局配置
            content: 渲染好的文本

        Returns:
            SyncResult
        """
        result = SyncResult(dry_run=self.dry_run)

        if not settings.manage_global:
            logger.info("Global config not managed, skipping", path=str(self.global_config))
            return result

        if not self._backup_once(content, result):
            # 备份失败时不覆盖原始文件
            return result

        self._write_if_different(self.global_config, content, result)
        return result

    def _backup_once(self, content: str, result: SyncResult) -> bool:
        """
        覆盖外来内容前备份全局配置，只备份一次

        以下情况不备份：已有备份、文件不存在、内容无需改动、
        文件是本工具渲染的（带 HEADER）。
        """
        if self.backup_path.exists():
            logger.debug("Backup already exists", path=str(self.backup_path))
            return True

        try:
            current = self._read(self.global_config)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read global config", path=str(self.global_config), error=str(e))
            result.errors.append(FileError(str(self.global_config), 'read', str(e)))
            return False

        if current is None or current == content:
            return True
        if current.startswith(HEADER):
            logger.debug("Global config already managed, no backup needed", path=str(self.global_config))
            return True

        if self.dry_run:
            result.backed_up.append(str(self.backup_path))
            return True

        try:
            shutil.copy2(self.global_config, self.backup_path)
        except OSError as e:
            logger.error("Failed to back up global config", path=str(self.global_config), error=str(e))
            result.errors.append(FileError(str(self.backup_path), 'backup', str(e)))
            return False

        result.backed_up.append(str(self.backup_path))
        logger.info("Global config backed up", source=str(self.global_config), backup=str(self.backup_path))
        return True

    def _read(self, path: Path) -> Optional[str]:
        """读取现有内容，文件不存在时返回 None"""
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None

    def _write_if_different(self, path: Path, content: str, result: SyncResult):
        """内容不同才写入"""
        try:
            current = self._read(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read file", path=str(path), error=str(e))
            result.errors.append(FileError(str(path), 'read', str(e)))
            return

        if current == content:
            logger.debug("File unchanged", path=str(path))
            result.skipped.append(str(path))
            return

        if self.dry_run:
            logger.info("File would be written", path=str(path), exists=current is not None)
            result.written.append(str(path))
            return

        try:
            self._atomic_write(path, content)
        except OSError as e:
            logger.error("Failed to write file", path=str(path), error=str(e))
            result.errors.append(FileError(str(path), 'write', str(e)))
            return

        logger.info("File written", path=str(path), created=current is None)
        result.written.append(str(path))

    def _atomic_write(self, path: Path, content: str):
        """
        原子写入

        先写 <path>.tmp 并 fsync，再 replace；失败时删除临时文件，
        目标文件保持原样。
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_name(path.name + TEMP_SUFFIX)

        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_file, FILE_MODE)
            temp_file.replace(path)
        except OSError:
            try:
                temp_file.unlink()
            except FileNotFoundError:
                pass
            raise

    def _delete(self, path: Path, result: SyncResult):
        """删除过期的受管文件"""
        if self.dry_run:
            logger.info("Stale managed file would be deleted", path=str(path))
            result.deleted.append(str(path))
            return

        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Stale managed file already gone", path=str(path))
            return
        except OSError as e:
            logger.error("Failed to delete stale managed file", path=str(path), error=str(e))
            result.errors.append(FileError(str(path), 'delete', str(e)))
            return

        logger.info("Stale managed file deleted", path=str(path))
        result.deleted.append(str(path))
