"""
Creates backups of ClickHouse tables in S3 by using the BACKUP command of the DB.
"""
import sys
from pathlib import Path

import click
from botocore.exceptions import BotoCoreError, ClientError
from dynaconf import Dynaconf
from loguru import logger

from clickhouse_table_backup.clickhouse.backends.base import Backend
from clickhouse_table_backup.clickhouse.backends.s3 import S3Backend
from clickhouse_table_backup.clickhouse.client import Client
from clickhouse_table_backup.errors import ConfigurationError, SetupError
from clickhouse_table_backup.orchestrator import run_backups
from clickhouse_table_backup.utils.config import BackupConfig, parse_config
from clickhouse_table_backup.utils.converters import object_name
from clickhouse_table_backup.utils.datatypes import BackupMode
from clickhouse_table_backup.utils.logging import setup_logging


class CtxArgs:
    """
    Cache object for arguments between click group and commands.
    """

    def __init__(self, config_folder: Path, settings: Dynaconf, ch: Client,
                 backend: Backend):
        self.config_folder = Path(config_folder)
        self.settings = settings
        self.ch = ch
        self.backend = backend


def load_backup_config(settings: Dynaconf, force_full: bool = False) -> BackupConfig:
    """
    Build the config of a run or exit.
    """
    try:
        return BackupConfig.from_settings(settings, BackupMode.FULL if force_full else None)
    except ConfigurationError as e:
        logger.critical(f'Invalid configuration: {e}')
        sys.exit(1)


@click.group()
@click.option(
    '-c',
    '--config-folder',
    help='Folder where the config files are stored. /etc/clickhouse-table-backup by default.'
         ' Make sure that the user has read and write access to the folder.',
    default='/etc/clickhouse-table-backup',
)
@click.pass_context
@click.version_option(package_name='clickhouse_table_backup')
def main(ctx, config_folder):
    """
    Create incremental or full backups of ClickHouse tables in S3.
    """
    try:
        settings = parse_config(Path(config_folder))
        log_dir = settings('logging.dir', cast=Path, default=None)
        if log_dir:
            setup_logging(log_dir, settings('logging.level', default='INFO'))

        ch = Client(
            host=settings('clickhouse.host', default='localhost'),
            port=settings('clickhouse.port', cast=int, default=9000),
            user=settings('clickhouse.user', default='default'),
            password=settings('clickhouse.password', default=''),
            database=settings('clickhouse.database', cast=str, default='default'),
            url=settings('clickhouse.url', default=None),
            status_check_interval=settings('backup.status_check_interval', cast=float,
                                           default=30),
        )
        backend = S3Backend(
            s3_endpoint=settings('s3.endpoint'),
            s3_bucket=settings('s3.bucket'),
            s3_access_key_id=settings('s3.access_key_id'),
            s3_secret_access_key=settings('s3.secret_access_key'),
            s3_endpoint_local=settings('s3.endpoint_local', default=None),
            s3_region=settings('s3.region', default='us-east-1'),
        )
    except Exception as e:
        logger.exception(f'Error during config parsing! {e}')
        sys.exit(1)

    ctx.obj = CtxArgs(config_folder, settings, ch, backend)


@main.command('backup')
@click.option(
    '-f', '--force-full',
    is_flag=True, show_default=True, default=False,
    help='Force a full backup even if incremental backups are enabled.'
)
@click.option(
    '-n', '--dry-run',
    is_flag=True, show_default=True, default=False,
    help='Only print the target and base of each backup.'
)
@click.pass_context
def backup_command(ctx, force_full, dry_run):
    """
    Back up the configured tables.
    Depending on the settings, this will create full or incremental backups.
    """
    args: CtxArgs = ctx.obj
    config = load_backup_config(args.settings, force_full)
    try:
        report = run_backups(config, args.ch, args.backend, dry_run=dry_run)
    except SetupError as e:
        logger.critical(f'Backup failed! {e}')
        sys.exit(1)

    for result in report:
        if not result.succeeded:
            click.secho(str(result), fg='red', file=sys.stderr)
        elif dry_run:
            click.secho(f'{result.table}:', fg='cyan')
            click.secho(f'\ttarget: {result.plan.target}', fg='green')
            click.secho(f'\tbase:   {result.plan.base or "-"}', fg='yellow')
    if not report.succeeded:
        sys.exit(1)


@main.command('list')
@click.pass_context
def list_command(ctx):
    """
    List the existing backups of the configured tables.
    """
    args: CtxArgs = ctx.obj
    config = load_backup_config(args.settings)
    try:
        if not args.backend.bucket_exists():
            raise SetupError(f'Bucket {args.backend.storage_url} does not exist.')
        output = click.style('Listing backups:\n', fg='green', bold=True)
        for table in config.tables:
            prefix = object_name(table.database, table.table)
            backups = sorted(args.backend.list_backups(f'{prefix}/'), key=lambda x: x.prefix)
            output += click.style(f'{table} @ {args.backend.storage_url}/{prefix}\n', fg='cyan')
            if len(backups) == 0:
                output += click.style('\tNone! You have to create a backup first...\n', fg='red')
            for backup in backups:
                if backup.timestamp is None:
                    output += click.style(f'\t{backup.name} (unknown name)\n', fg='red')
                elif backup.is_chain_start:
                    output += click.style(f'\t{backup.name} (chain start)\n', fg='bright_green')
                else:
                    output += click.style(f'\t{backup.name}\n', fg='yellow')
            output += '\n'
    except (SetupError, ClientError, BotoCoreError) as e:
        logger.critical(f'Listing backups failed! {e}')
        sys.exit(1)
    click.echo(output)


if __name__ == '__main__':
    main()
