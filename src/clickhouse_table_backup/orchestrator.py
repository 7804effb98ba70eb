"""
Backs up the configured tables one after another.
"""
from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from clickhouse_table_backup.chain import find_latest, plan_backup
from clickhouse_table_backup.clickhouse.backends.base import Backend
from clickhouse_table_backup.clickhouse.client import Client
from clickhouse_table_backup.errors import (BackupEngineError, ConfigurationError,
                                            LocatorError, SetupError)
from clickhouse_table_backup.utils.config import BackupConfig
from clickhouse_table_backup.utils.converters import format_timestamp, object_name
from clickhouse_table_backup.utils.datatypes import (BackupMode, BackupRunResult,
                                                     RunReport, TableRef)


def check_setup(config: BackupConfig, ch: Client, backend: Backend):
    """
    Fail before any backup work if the run cannot succeed.
    :raises SetupError: no tables, ClickHouse unreachable or bucket missing
    """
    if len(config.tables) == 0:
        raise ConfigurationError('No tables specified for backup.')
    if not ch.ping():
        raise SetupError(f'Failed to connect to ClickHouse at {ch.address}')
    if not backend.bucket_exists():
        raise SetupError(f'Bucket {backend.storage_url} does not exist. '
                         'Please create it first.')


def backup_table(config: BackupConfig, ch: Client, backend: Backend, table: TableRef,
                 run_timestamp: str, dry_run: bool = False) -> BackupRunResult:
    """
    Locate the base, plan and create the backup of one table.
    :raises LocatorError: listing the existing backups failed
    :raises BackupEngineError: ClickHouse failed to create the backup
    """
    prefix = object_name(table.database, table.table)
    prior_backup = None
    if config.mode is BackupMode.INCREMENTAL:
        logger.info(f'Checking for existing backups of {table} at '
                    f'{backend.storage_url}/{prefix}/...')
        prior_backup = find_latest(backend, prefix)
        if prior_backup is None:
            logger.info(f'No existing backup found for {table}. Starting a new chain.')

    plan = plan_backup(config.mode, prior_backup, prefix, run_timestamp, backend.storage_url)
    if dry_run:
        logger.info(f'Dry run: {table} -> {plan}')
        return BackupRunResult(table, plan)

    logger.info(f'Backing up {table}: {plan}')
    result = ch.backup_table(table, plan, config.s3_access_key_id,
                             config.s3_secret_access_key)
    logger.info(f'Backup of {table} completed. {result}')
    return BackupRunResult(table, plan, result=result)


def run_backups(config: BackupConfig, ch: Client, backend: Backend,
                run_timestamp: Optional[str] = None, dry_run: bool = False) -> RunReport:
    """
    Back up all configured tables sequentially.
    A failing table is reported and does not stop the remaining ones.
    :param config: settings of the run
    :param ch: ClickHouse client
    :param backend: storage backend
    :param run_timestamp: shared by all backups of the run. Default: now
    :param dry_run: only plan the backups
    :raises SetupError: see check_setup
    :return: RunReport
    """
    check_setup(config, ch, backend)
    run_timestamp = run_timestamp or format_timestamp(datetime.now(timezone.utc))
    logger.info(f'Starting {config.mode.value} backup run {run_timestamp} '
                f'of {len(config.tables)} tables.')

    report = RunReport(run_timestamp)
    for table in config.tables:
        try:
            result = backup_table(config, ch, backend, table, run_timestamp, dry_run)
        except (LocatorError, BackupEngineError) as e:
            logger.error(f'Backup of {table} failed! {e}')
            result = BackupRunResult(table, error=e)
        report.append(result)

    if report.succeeded:
        logger.info(f'Backup run {run_timestamp} completed successfully.')
    else:
        logger.error(f'Backup run {run_timestamp}: {len(report.failed)} of {len(report)} '
                     'tables failed: ' + ', '.join(str(x.table) for x in report.failed))
    return report
