"""
平台信息探测
"""

import shlex
import socket
from pathlib import Path
from typing import Dict
import structlog

from logrotate_sync.config.models import OSFamily

logger = structlog.get_logger()

OS_RELEASE_PATH = "/etc/os-release"

_RHEL_IDS = {'rhel', 'centos', 'fedora', 'rocky', 'almalinux', 'ol', 'amzn'}
_DEBIAN_IDS = {'debian', 'ubuntu', 'raspbian', 'linuxmint'}


def read_os_release(path: str = OS_RELEASE_PATH) -> Dict[str, str]:
    """解析 os-release 文件，不存在时返回空字典"""
    release_file = Path(path)
    if not release_file.exists():
        return {}

    values = {}
    for line in release_file.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, _, raw = line.partition('=')
        try:
            parsed = shlex.split(raw)
        except ValueError:
            parsed = [raw.strip('"\'')]
        values[key] = ' '.join(parsed)
    return values


def detect_os_family(path: str = OS_RELEASE_PATH) -> OSFamily:
    """
    根据 os-release 的 ID / ID_LIKE 判断发行版家族

    无法识别时按 Debian 家族处理并记录警告
    """
    release = read_os_release(path)
    ids = {release.get('ID', '').lower()}
    ids.update(release.get('ID_LIKE', '').lower().split())

    if ids & _RHEL_IDS:
        family = OSFamily.RHEL
    elif ids & _DEBIAN_IDS:
        family = OSFamily.DEBIAN
    else:
        logger.warning("Unknown distribution, assuming Debian family", ids=sorted(i for i in ids if i))
        return OSFamily.DEBIAN

    logger.debug("OS family detected", family=family.value, id=release.get('ID'))
    return family


def get_hostname() -> str:
    """本机主机名"""
    return socket.gethostname()
