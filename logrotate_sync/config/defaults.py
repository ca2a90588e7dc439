"""
发行版默认配置

Debian 与 RHEL 家族的 logrotate.conf 基线不同，先按家族取默认值，
再叠加用户配置，渲染器内部不做发行版分支。
"""

from dataclasses import replace
from typing import Any, Dict, Optional

from logrotate_sync.config.models import GlobalSettings, Interval, OSFamily


_FAMILY_DEFAULTS: Dict[OSFamily, GlobalSettings] = {
    OSFamily.DEBIAN: GlobalSettings(
        interval=Interval.WEEKLY,
        rotate_count=4,
        dateext=False,
        create=True,
        compress=False,
    ),
    OSFamily.RHEL: GlobalSettings(
        interval=Interval.WEEKLY,
        rotate_count=4,
        dateext=True,
        create=True,
        compress=False,
    ),
}


def default_settings(os_family: OSFamily) -> GlobalSettings:
    """返回指定发行版家族的默认全局配置（副本）"""
    return replace(_FAMILY_DEFAULTS[os_family])


def resolve_global_settings(
    os_family: OSFamily,
    overrides: Optional[Dict[str, Any]] = None
) -> GlobalSettings:
    """
    合并发行版默认值与用户配置

    Args:
        os_family: 发行版家族
        overrides: 显式设置的字段

    Returns:
        GlobalSettings 对象
    """
    return replace(default_settings(os_family), **(overrides or {}))
