from pathlib import Path

import pytest

from logrotate_sync.config.defaults import default_settings, resolve_global_settings
from logrotate_sync.config.models import (
    CompressCommand,
    CustomConfig,
    DocFormat,
    GlobalSettings,
    Interval,
    OSFamily,
    PathsConfig,
)
from logrotate_sync.config.parser import ConfigParseError, ConfigParser
from logrotate_sync.config.validator import ConfigValidationError, validate, validate_paths
from logrotate_sync.utils.platform import detect_os_family

FULL_CONFIG = """\
<logrotate version="1.0">
    <host name="web01" osFamily="rhel"/>
    <paths globalConfig="/tmp/etc/logrotate.conf" dropinDir="/tmp/etc/logrotate.d"/>
    <global manage="true" interval="daily" rotate="12" size="100M">
        <compress enabled="true" command="zstd" options="-T0" delay="true"/>
    </global>
    <custom name="myapp" rotate="7" interval="daily" maxsize="200M" compress="true" sharedscripts="true">
        <path>/var/log/myapp/*.log</path>
        <path>/var/log/myapp/audit/*.log</path>
        <create>0640 myapp adm</create>
        <postrotate>
            systemctl reload myapp
            logger "myapp rotated"
        </postrotate>
    </custom>
    <custom name="cron" rotate="4" missingok="true" notifempty="false">
        <path>/var/log/cron.log</path>
    </custom>
    <packages install="true"/>
    <documentation enabled="true" format="json" outputDir="/srv/docs"/>
    <logging level="debug" format="json"/>
    <history enabled="true" path="/tmp/history.db" keepRuns="5"/>
</logrotate>
"""


def test_parse_full_config() -> None:
    config = ConfigParser().parse_string(FULL_CONFIG)

    assert config.host.hostname == "web01"
    assert config.host.os_family is OSFamily.RHEL
    assert config.paths.dropin_dir == "/tmp/etc/logrotate.d"
    assert config.paths.prefix == "managed-"
    assert config.global_overrides == {
        "manage_global": True,
        "interval": Interval.DAILY,
        "rotate_count": 12,
        "size": "100M",
        "compress": True,
        "compress_command": CompressCommand.ZSTD,
        "compress_options": "-T0",
        "delaycompress": True,
    }

    myapp, cron = config.custom_configs
    assert myapp.paths == ["/var/log/myapp/*.log", "/var/log/myapp/audit/*.log"]
    assert myapp.rotate == 7
    assert myapp.create == "0640 myapp adm"
    assert myapp.compress is True
    assert myapp.delaycompress is None
    assert myapp.sharedscripts is True
    assert myapp.postrotate == 'systemctl reload myapp\nlogger "myapp rotated"'

    assert cron.interval is None
    assert cron.missingok is True
    assert cron.notifempty is False
    assert cron.create is None
    assert cron.postrotate is None

    assert config.packages.install is True
    assert config.packages.names == ["logrotate", "zstd"]
    assert config.documentation.format is DocFormat.JSON
    assert config.documentation.output_dir == "/srv/docs"
    assert config.logging.level == "DEBUG"
    assert config.history.enabled is True
    assert config.history.keep_runs == 5


def test_parse_minimal_config_uses_defaults() -> None:
    config = ConfigParser().parse_string("<logrotate/>")

    assert config.global_overrides == {}
    assert config.custom_configs == []
    assert config.host.os_family is None
    assert config.paths.global_config == "/etc/logrotate.conf"
    assert config.documentation.format is DocFormat.BOTH
    assert config.history.enabled is False


def test_parse_invalid_enum_is_validation_error() -> None:
    with pytest.raises(ConfigValidationError, match="hourly"):
        ConfigParser().parse_string('<logrotate><global interval="hourly"/></logrotate>')


def test_parse_bad_integer() -> None:
    with pytest.raises(ConfigParseError, match="rotate"):
        ConfigParser().parse_string('<logrotate><global rotate="many"/></logrotate>')


def test_parse_malformed_and_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigParseError):
        ConfigParser().parse_string("<logrotate>")
    with pytest.raises(ConfigParseError):
        ConfigParser().parse(str(tmp_path / "missing.xml"))
    with pytest.raises(ConfigParseError, match="root element"):
        ConfigParser().parse_string("<config/>")


def test_validate_collects_all_problems() -> None:
    configs = [
        CustomConfig(name="app", paths=["/var/log/a.log"], rotate=1),
        CustomConfig(name="app", paths=["/var/log/b.log"], rotate=1),
        CustomConfig(name="../etc", paths=["/var/log/c.log"], rotate=1),
        CustomConfig(name="empty", paths=[], rotate=1),
        CustomConfig(name="neg", paths=["/var/log/d.log"], rotate=-1),
        CustomConfig(name="missing", paths=["/var/log/e.log"], rotate=None),
        CustomConfig(name="hourly", paths=["/var/log/f.log"], rotate=1, interval="hourly"),
    ]

    with pytest.raises(ConfigValidationError) as excinfo:
        validate(GlobalSettings(rotate_count=0), configs)

    problems = excinfo.value.problems
    assert len(problems) == 7
    assert any("duplicate" in p for p in problems)
    assert any("../etc" in p for p in problems)
    assert any("empty" in p and "paths" in p for p in problems)
    assert any(p.startswith("global") for p in problems)
    assert any("invalid interval 'hourly'" in p for p in problems)


@pytest.mark.parametrize("prefix", ["", "../managed-", "sub/x-"])
def test_validate_paths_rejects_unsafe_prefix(prefix: str) -> None:
    with pytest.raises(ConfigValidationError, match="prefix"):
        validate_paths(PathsConfig(prefix=prefix))


def test_validate_paths_accepts_defaults() -> None:
    validate_paths(PathsConfig())


def test_validate_accepts_scenario(scenario_settings, myapp) -> None:
    validate(scenario_settings, [myapp])


def test_family_defaults_differ() -> None:
    debian = default_settings(OSFamily.DEBIAN)
    rhel = default_settings(OSFamily.RHEL)

    assert debian.interval is Interval.WEEKLY and rhel.interval is Interval.WEEKLY
    assert debian.dateext is False
    assert rhel.dateext is True
    assert not debian.compress and not rhel.compress


def test_resolve_merges_overrides_without_mutating_defaults() -> None:
    resolved = resolve_global_settings(OSFamily.RHEL, {"rotate_count": 30, "compress": True})

    assert resolved.rotate_count == 30
    assert resolved.compress is True
    assert resolved.dateext is True
    assert default_settings(OSFamily.RHEL).rotate_count == 4


@pytest.mark.parametrize(
    "content, expected",
    [
        ('ID=ubuntu\nID_LIKE=debian\n', OSFamily.DEBIAN),
        ('ID="rocky"\nID_LIKE="rhel centos fedora"\n', OSFamily.RHEL),
        ('ID=fedora\n', OSFamily.RHEL),
        ('ID=alpine\n', OSFamily.DEBIAN),
    ],
)
def test_detect_os_family(tmp_path: Path, content: str, expected: OSFamily) -> None:
    release = tmp_path / "os-release"
    release.write_text(content)

    assert detect_os_family(str(release)) is expected
