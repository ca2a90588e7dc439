from pathlib import Path

import pytest
import structlog

from logrotate_sync.config.models import (
    CompressCommand,
    CustomConfig,
    GlobalSettings,
    HostConfig,
    Interval,
    LogrotateConfig,
    OSFamily,
    PathsConfig,
    DocumentationConfig,
)
from logrotate_sync.utils.logger import close_log_file


@pytest.fixture(autouse=True)
def _reset_structlog():
    # CliRunner swaps sys.stderr; don't let a configured logger outlive it
    yield
    structlog.reset_defaults()
    close_log_file()


@pytest.fixture
def scenario_settings() -> GlobalSettings:
    return GlobalSettings(
        interval=Interval.DAILY,
        rotate_count=12,
        compress=True,
        compress_command=CompressCommand.GZIP,
        delaycompress=True,
        size="100M",
        manage_global=True,
    )


@pytest.fixture
def myapp() -> CustomConfig:
    return CustomConfig(
        name="myapp",
        paths=["/var/log/myapp/*.log"],
        rotate=7,
        interval=Interval.DAILY,
        maxsize="200M",
        compress=True,
    )


@pytest.fixture
def etc(tmp_path: Path) -> Path:
    root = tmp_path / "etc"
    (root / "logrotate.d").mkdir(parents=True)
    return root


def _make_config(etc: Path, customs, overrides=None, docs_dir=None, os_family=OSFamily.DEBIAN) -> LogrotateConfig:
    return LogrotateConfig(
        version="1.0",
        host=HostConfig(hostname="web01", os_family=os_family),
        global_overrides=dict(overrides or {}),
        custom_configs=list(customs),
        paths=PathsConfig(
            global_config=str(etc / "logrotate.conf"),
            dropin_dir=str(etc / "logrotate.d"),
        ),
        documentation=DocumentationConfig(
            enabled=docs_dir is not None,
            output_dir=str(docs_dir) if docs_dir is not None else "./docs",
        ),
    )


@pytest.fixture
def make_config():
    return _make_config
