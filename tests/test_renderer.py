import re

from logrotate_sync.config.models import (
    CompressCommand,
    CustomConfig,
    GlobalSettings,
    Interval,
    OSFamily,
)
from logrotate_sync.core.renderer import (
    custom_directives,
    global_directives,
    render_custom,
    render_global,
)


def _directives(text: str):
    return [line.strip() for line in text.splitlines() if line.strip() and not line.startswith("#")]


def test_global_scenario_directives(scenario_settings: GlobalSettings) -> None:
    text = render_global(scenario_settings)
    directives = _directives(text)

    assert directives == [
        "daily",
        "rotate 12",
        "create",
        "compress",
        "delaycompress",
        "size 100M",
        "include /etc/logrotate.d",
    ]
    assert text.endswith("include /etc/logrotate.d\n")


def test_global_omits_unset_optionals() -> None:
    text = render_global(GlobalSettings(create=False))

    assert _directives(text) == ["weekly", "rotate 4", "include /etc/logrotate.d"]
    assert "size" not in text
    assert "compressoptions" not in text


def test_global_delaycompress_ignored_without_compress() -> None:
    settings = GlobalSettings(compress=False, delaycompress=True)
    assert "delaycompress" not in global_directives(settings)


def test_global_zstd_block() -> None:
    settings = GlobalSettings(
        compress=True,
        compress_command=CompressCommand.ZSTD,
        compress_options="-T0 -19",
        maxsize="1G",
        dateext=True,
    )
    assert global_directives(settings) == [
        "weekly",
        "rotate 4",
        "dateext",
        "create",
        "compress",
        "compresscmd /usr/bin/zstd",
        "uncompresscmd /usr/bin/unzstd",
        "compressext .zst",
        "compressoptions -T0 -19",
        "maxsize 1G",
    ]


def test_global_rhel_keeps_wtmp_and_btmp() -> None:
    rhel = render_global(GlobalSettings(), OSFamily.RHEL, "/etc/logrotate.d")
    debian = render_global(GlobalSettings(), OSFamily.DEBIAN, "/etc/logrotate.d")

    assert "/var/log/wtmp {" in rhel
    assert "/var/log/btmp {" in rhel
    assert "wtmp" not in debian
    assert rhel.index("include /etc/logrotate.d") < rhel.index("/var/log/wtmp")


def test_global_render_is_deterministic(scenario_settings: GlobalSettings) -> None:
    assert render_global(scenario_settings, OSFamily.RHEL) == render_global(scenario_settings, OSFamily.RHEL)


def test_custom_scenario_stanza(myapp: CustomConfig) -> None:
    text = render_custom(myapp)
    body = text.split("\n", 2)[2]  # skip the two header lines

    assert body == (
        "\n"
        "/var/log/myapp/*.log {\n"
        "    daily\n"
        "    rotate 7\n"
        "    compress\n"
        "    maxsize 200M\n"
        "}\n"
    )


def test_custom_grammar_contains_only_set_directives() -> None:
    config = CustomConfig(
        name="web",
        paths=["/var/log/nginx/access.log", "/var/log/nginx/error.log"],
        rotate=14,
        create="0640 www-data adm",
        missingok=True,
        notifempty=True,
        sharedscripts=True,
    )
    text = render_custom(config)
    lines = [line for line in text.splitlines() if line and not line.startswith("#")]

    assert lines[0] == "/var/log/nginx/access.log /var/log/nginx/error.log {"
    assert lines[-1] == "}"
    assert all(re.match(r"^ {4}\S", line) for line in lines[1:-1])
    assert [line.strip() for line in lines[1:-1]] == [
        "rotate 14",
        "create 0640 www-data adm",
        "missingok",
        "notifempty",
        "sharedscripts",
    ]


def test_custom_negations_and_bare_create() -> None:
    config = CustomConfig(
        name="db",
        paths=["/var/log/db.log"],
        rotate=3,
        create="",
        compress=False,
        delaycompress=True,
        missingok=False,
        notifempty=False,
        copytruncate=True,
    )
    assert custom_directives(config) == [
        "rotate 3",
        "create",
        "nocompress",
        "nomissingok",
        "ifempty",
        "copytruncate",
    ]


def test_custom_inherits_compression_when_unset() -> None:
    config = CustomConfig(name="a", paths=["/var/log/a.log"], rotate=1, delaycompress=True)
    directives = custom_directives(config)

    assert "compress" not in directives
    assert "nocompress" not in directives
    assert "delaycompress" in directives


def test_custom_postrotate_multiline_verbatim() -> None:
    script = "if [ -f /run/app.pid ]; then\n\tkill -HUP $(cat /run/app.pid)\nfi"
    config = CustomConfig(
        name="app",
        paths=["/var/log/app/*.log"],
        rotate=5,
        sharedscripts=True,
        postrotate=script,
    )
    text = render_custom(config)

    assert "    sharedscripts\n    postrotate\n" + script + "\n    endscript\n}\n" in text
