"""
config handling for dynaconf
"""
import os
import sys
from importlib.resources import files
from pathlib import Path
from typing import List, Optional, Union

from dynaconf import Dynaconf, Validator
from loguru import logger

from clickhouse_table_backup.errors import ConfigurationError
from clickhouse_table_backup.utils.datatypes import BackupMode, TableRef

ENVVAR_PREFIX = 'CH_TABLE_BACKUP'


def parse_config(config_folder: Path) -> Dynaconf:
    """
    Parse config with dynaconf.
    Creates the default config in config_folder if it is missing.
    Environment variables (CH_TABLE_BACKUP_<SECTION>__<KEY>) take precedence.
    :return: Dynaconf
    """
    default_config = config_folder / 'default.toml'
    if not os.path.isfile(default_config):
        try:
            config_folder.mkdir(parents=True, exist_ok=True)
            with open(default_config, 'w', encoding='utf-8') as f:
                f.write(
                    files('clickhouse_table_backup.data').joinpath('default.toml').read_text())
        except Exception as e:
            logger.critical(f'Failed to create default config {default_config}. '
                            'Consider creating the folder writeable for this user '
                            f'or choose a different path. Error: {e}')
            sys.exit(1)

    settings = Dynaconf(
        envvar_prefix=ENVVAR_PREFIX,
        settings_files=['default.toml', 'config.toml'],
        root_path=str(config_folder),
        merge_enabled=True,
        validators=[
            Validator('clickhouse.host', default='localhost'),
            Validator('clickhouse.port', cast=int, default=9000),
            Validator('clickhouse.user', default='default'),
            Validator('clickhouse.password', default=''),
            Validator('clickhouse.database', cast=str, default='default'),
            Validator('s3.endpoint', default='http://localhost:9000'),
            Validator('s3.bucket', default='backups'),
            Validator('s3.access_key_id', default='minioadmin'),
            Validator('s3.secret_access_key', default='minioadmin'),
            Validator('s3.region', default='us-east-1'),
            Validator('backup.tables', default=''),
            Validator('backup.incremental', default=''),
            Validator('backup.status_check_interval', cast=float, default=30),
        ]
    )
    return settings


def parse_tables(tables: Union[str, List[str]], default_database: str) -> List[TableRef]:
    """
    Parse the configured tables.
    dynaconf turns numeric values into numbers, so scalars are converted back to str.
    :param tables: comma-separated string or list. Entries: table or db.table
    :param default_database: database of unqualified tables
    :return: list of tables in the given order
    """
    if tables is None:
        tables = []
    elif not isinstance(tables, (list, tuple)):
        tables = str(tables).split(',')
    names = [str(x).strip() for x in tables if x is not None and str(x).strip()]
    if len(names) == 0:
        raise ConfigurationError(
            'No tables specified for backup. '
            f'Set backup.tables or {ENVVAR_PREFIX}_BACKUP__TABLES.')
    return [TableRef.parse(name, str(default_database)) for name in names]


def is_enabled(value) -> bool:
    """
    Flags are enabled by any non-empty value.
    dynaconf parses 'false' or '0' to False / 0. Those are set values and count as enabled.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return len(value.strip()) > 0
    return True


class BackupConfig:
    """
    Settings of one run. Built once from the dynaconf settings.
    """

    def __init__(self, tables: List[TableRef],
                 mode: BackupMode = BackupMode.FULL,
                 s3_access_key_id: str = 'minioadmin',
                 s3_secret_access_key: str = 'minioadmin'):
        """
        :param tables: tables to back up in this order
        :param mode: full or incremental
        :param s3_access_key_id: credentials passed to ClickHouse
        :param s3_secret_access_key: credentials passed to ClickHouse
        """
        self.tables = tables
        self.mode = mode
        self.s3_access_key_id = s3_access_key_id
        self.s3_secret_access_key = s3_secret_access_key

    @classmethod
    def from_settings(cls, settings: Dynaconf,
                      mode: Optional[BackupMode] = None) -> 'BackupConfig':
        """
        :param settings: parsed settings
        :param mode: overrides backup.incremental
        """
        if mode is None:
            mode = (BackupMode.INCREMENTAL
                    if is_enabled(settings('backup.incremental', default=''))
                    else BackupMode.FULL)
        return cls(
            tables=parse_tables(settings('backup.tables', default=''),
                                settings('clickhouse.database', cast=str, default='default')),
            mode=mode,
            s3_access_key_id=settings('s3.access_key_id'),
            s3_secret_access_key=settings('s3.secret_access_key'),
        )
