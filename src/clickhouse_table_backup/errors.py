"""
Exceptions raised while backing up tables.
"""
from typing import Optional


class BackupError(RuntimeError):
    """
    Base class for all backup errors.
    """


class SetupError(BackupError):
    """
    The run cannot start. (ClickHouse unreachable, bucket missing, ...)
    """


class ConfigurationError(SetupError):
    """
    Invalid configuration. E.g.: no tables or a malformed table name.
    """


class LocatorError(BackupError):
    """
    Listing the existing backups of a table failed.
    """

    def __init__(self, table, cause: Exception):
        self.table = table
        self.cause = cause
        super().__init__(f'Failed to list existing backups of {table}: {cause}')


class BackupEngineError(BackupError):
    """
    ClickHouse failed to create the backup of a table.
    """

    def __init__(self, table, target: str, cause: Optional[Exception | str] = None):
        self.table = table
        self.target = target
        self.cause = cause
        super().__init__(f'Backup of {table} to {target} failed: {cause}')
