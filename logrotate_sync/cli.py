"""
logrotate-sync CLI Entry Point
"""

import sys
import click
import structlog

from logrotate_sync import __version__
from logrotate_sync.config.models import DocFormat
from logrotate_sync.config.parser import ConfigParser, ConfigParseError
from logrotate_sync.config.validator import ConfigValidationError
from logrotate_sync.utils.logger import setup_logging

logger = structlog.get_logger()

EXIT_FAILED = 1
EXIT_INVALID = 2


def _print_report(report, check: bool):
    """打印运行摘要"""
    sync = report.sync
    written, deleted = ("would write", "would delete") if check else ("written", "deleted")
    for path in sync.backed_up:
        click.echo(f"backup     {path}")
    for path in sync.written:
        click.echo(f"{written:<10} {path}")
    for path in sync.deleted:
        click.echo(f"{deleted:<10} {path}")
    for error in sync.errors:
        click.echo(f"FAILED     {error.path} ({error.action}: {error.message})", err=True)
    if report.packages is not None:
        for name, message in report.packages.errors.items():
            click.echo(f"FAILED     package {name} ({message})", err=True)

    status = "failed" if report.failed else ("changed" if sync.changed else "ok")
    click.echo(
        f"{report.hostname}: {status} "
        f"(written={len(sync.written)} skipped={len(sync.skipped)} "
        f"deleted={len(sync.deleted)} errors={len(sync.errors)})"
    )


def _print_history(db_path: str, limit: int):
    """打印最近的运行记录"""
    from logrotate_sync.storage.history import HistoryStore

    store = HistoryStore(db_path)
    runs = store.recent_runs(limit)
    if not runs:
        click.echo("No runs recorded.")
        return

    for run in runs:
        status = "failed" if not run['success'] else "ok"
        mode = " check" if run['dry_run'] else ""
        click.echo(
            f"#{run['id']} {run['timestamp']} {run['hostname']} {status}{mode} "
            f"written={run['written']} skipped={run['skipped']} "
            f"deleted={run['deleted']} errors={run['errors']}"
        )
        for failure in run['failed_files']:
            click.echo(f"    {failure['path']} ({failure['action']}: {failure['message']})")


@click.command()
@click.option(
    '-o', '--config',
    default='./logrotate.xml',
    type=click.Path(exists=True, dir_okay=False),
    help='配置文件路径 [默认: ./logrotate.xml]'
)
@click.option(
    '--check',
    is_flag=True,
    help='检查模式：只报告将要发生的变更，不修改任何文件'
)
@click.option(
    '--install-packages/--no-install-packages',
    default=None,
    help='安装 logrotate / zstd 软件包（覆盖配置文件）'
)
@click.option(
    '--docs-dir',
    type=str,
    help='文档输出目录（覆盖配置文件）'
)
@click.option(
    '--docs-format',
    type=click.Choice([f.value for f in DocFormat], case_sensitive=False),
    help='文档格式（覆盖配置文件）'
)
@click.option(
    '--no-docs',
    is_flag=True,
    help='不生成文档'
)
@click.option(
    '--log-level',
    default=None,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    help='日志级别 [默认: INFO]'
)
@click.option(
    '--log-format',
    default=None,
    type=click.Choice(['text', 'json'], case_sensitive=False),
    help='日志格式 [默认: text]'
)
@click.option(
    '--log-file',
    type=str,
    help='日志文件路径（启用文件日志）'
)
@click.option(
    '--db-path',
    type=str,
    help='运行历史数据库路径（启用历史记录）'
)
@click.option(
    '--history',
    'history_limit',
    type=int,
    help='显示最近 N 次运行记录后退出'
)
@click.version_option(version=__version__, prog_name='logrotate-sync')
def main(
    config: str,
    check: bool,
    install_packages,
    docs_dir: str,
    docs_format: str,
    no_docs: bool,
    log_level: str,
    log_format: str,
    log_file: str,
    db_path: str,
    history_limit: int
):
    """
    logrotate-sync - 声明式 logrotate 配置管理

    示例:

    \b
    # 应用配置
    logrotate-sync -o /etc/logrotate-sync.xml

    \b
    # 检查模式，查看将要发生的变更
    logrotate-sync -o /etc/logrotate-sync.xml --check

    \b
    # 同时安装软件包，仅生成 JSON 文档
    logrotate-sync --install-packages --docs-format json --docs-dir /srv/docs

    \b
    # 查看最近 10 次运行
    logrotate-sync --history 10 --db-path /var/lib/logrotate-sync/history.db
    """
    setup_logging(level=(log_level or 'INFO').upper(), log_format=log_format or 'text', log_file=log_file)

    try:
        sync_config = ConfigParser().parse(config)
    except (ConfigParseError, ConfigValidationError) as e:
        logger.error("Invalid configuration", config=config, error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_INVALID)

    # 命令行覆盖配置文件中的日志设置
    logging_config = sync_config.logging
    if log_level:
        logging_config.level = log_level.upper()
    if log_format:
        logging_config.format = log_format
    if log_file:
        logging_config.file_path = log_file
    setup_logging(level=logging_config.level, log_format=logging_config.format, log_file=logging_config.file_path)

    if db_path:
        sync_config.history.enabled = True
        sync_config.history.path = db_path
        logger.info("History database overridden via CLI", path=db_path)

    if history_limit is not None:
        _print_history(sync_config.history.path, history_limit)
        return

    if no_docs:
        sync_config.documentation.enabled = False
    if docs_dir:
        sync_config.documentation.output_dir = docs_dir
    if docs_format:
        sync_config.documentation.format = DocFormat(docs_format.lower())

    logger.info("logrotate-sync starting", version=__version__, config=config, check=check)

    from logrotate_sync.core.engine import LogrotateEngine

    try:
        engine = LogrotateEngine(sync_config, dry_run=check)
        report = engine.run(install_packages=install_packages)
    except ConfigValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_INVALID)

    _print_report(report, check)

    if report.failed:
        sys.exit(EXIT_FAILED)


if __name__ == '__main__':
    main()
