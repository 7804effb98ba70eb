"""
Decides how the next backup of a table is chained to the existing ones.
"""
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from clickhouse_table_backup.clickhouse.backends.base import Backend
from clickhouse_table_backup.errors import LocatorError
from clickhouse_table_backup.utils.converters import FULL_SUFFIX
from clickhouse_table_backup.utils.datatypes import BackupMode, BackupObject, BackupPlan


def find_latest(backend: Backend, table_prefix: str) -> Optional[BackupObject]:
    """
    Get the newest existing backup of a table.
    The backup names start with a fixed width timestamp, so the
    lexicographically greatest prefix is the newest backup.
    :param backend: storage backend
    :param table_prefix: prefix of the table (db/table)
    :return: BackupObject or None
    """
    try:
        backups = backend.list_backups(f'{table_prefix}/')
    except (ClientError, BotoCoreError, OSError) as e:
        raise LocatorError(table_prefix, e) from e

    latest = None
    for backup in backups:
        # last one wins on equal keys
        if latest is None or backup.prefix >= latest.prefix:
            latest = backup
    if latest:
        logger.debug(f'Found {len(backups)} backups below {table_prefix}/. Newest: {latest.key}')
    return latest


def plan_backup(mode: BackupMode, prior_backup: Optional[BackupObject], table_prefix: str,
                run_timestamp: str, storage_url: str = '') -> BackupPlan:
    """
    Get the target and the base of the next backup.
    Full mode: <prefix>/<ts>
    Incremental mode, first backup: <prefix>/<ts>_full
    Incremental mode: <prefix>/<ts> based on the prior backup
    :param mode: backup mode of the run
    :param prior_backup: newest existing backup. Ignored in full mode.
    :param table_prefix: prefix of the table (db/table)
    :param run_timestamp: formatted timestamp of the run
    :param storage_url: endpoint/bucket
    :return: BackupPlan
    """
    target_key = f'{table_prefix}/{run_timestamp}'
    if mode is BackupMode.FULL:
        return BackupPlan(target_key, storage_url=storage_url)
    if prior_backup is None:
        return BackupPlan(target_key + FULL_SUFFIX, storage_url=storage_url)
    return BackupPlan(target_key, base_key=prior_backup.key, storage_url=storage_url)
