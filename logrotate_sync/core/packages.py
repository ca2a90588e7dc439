"""
软件包管理

只负责两件事：查询是否已安装、确保已安装。
依赖解析完全交给系统包管理器。
"""

import subprocess
from dataclasses import dataclass, field
from typing import Dict, List
import structlog

from logrotate_sync.config.models import OSFamily

logger = structlog.get_logger()


_QUERY_COMMANDS: Dict[OSFamily, List[str]] = {
    OSFamily.DEBIAN: ["dpkg-query", "-W", "-f=${Status}"],
    OSFamily.RHEL: ["rpm", "-q"],
}

_INSTALL_COMMANDS: Dict[OSFamily, List[str]] = {
    OSFamily.DEBIAN: ["apt-get", "install", "-y", "--no-install-recommends"],
    OSFamily.RHEL: ["dnf", "install", "-y"],
}


@dataclass
class PackageResult:
    """软件包处理结果"""
    installed: List[str] = field(default_factory=list)
    present: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return bool(self.errors)


class PackageManager:
    """系统包管理器封装"""

    def __init__(self, os_family: OSFamily, dry_run: bool = False, timeout: int = 600):
        """
        初始化包管理器

        Args:
            os_family: 发行版家族
            dry_run: 检查模式，不安装
            timeout: 安装命令超时（秒）
        """
        self.os_family = os_family
        self.dry_run = dry_run
        self.timeout = timeout

    def is_installed(self, name: str) -> bool:
        """查询软件包是否已安装"""
        cmd = _QUERY_COMMANDS[self.os_family] + [name]
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
        except FileNotFoundError:
            logger.warning("Package query tool not found", command=cmd[0])
            return False

        if proc.returncode != 0:
            return False
        if self.os_family == OSFamily.DEBIAN:
            return "install ok installed" in proc.stdout
        return True

    def ensure_installed(self, names: List[str]) -> PackageResult:
        """
        确保软件包已安装

        Args:
            names: 软件包名列表

        Returns:
            PackageResult
        """
        result = PackageResult()
        missing = []

        for name in names:
            if self.is_installed(name):
                result.present.append(name)
            else:
                missing.append(name)

        if not missing:
            logger.info("Packages already installed", packages=result.present)
            return result

        if self.dry_run:
            logger.info("Packages would be installed", packages=missing)
            result.installed.extend(missing)
            return result

        cmd = _INSTALL_COMMANDS[self.os_family] + missing
        logger.info("Installing packages", packages=missing, command=" ".join(cmd))

        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            for name in missing:
                result.errors[name] = str(e)
            logger.error("Package installation failed", packages=missing, error=str(e))
            return result

        if proc.returncode != 0:
            error = proc.stderr.strip() or f"exit code {proc.returncode}"
            for name in missing:
                result.errors[name] = error
            logger.error("Package installation failed", packages=missing, returncode=proc.returncode, error=error)
            return result

        result.installed.extend(missing)
        logger.info("Packages installed", packages=missing)
        return result
