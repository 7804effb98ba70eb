"""
Contains classes representing tables, backups and backup plans.
"""
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from clickhouse_table_backup.errors import ConfigurationError
from .converters import parse_backup_name

# '/' separates the key segments in the bucket, the rest would break the quoting.
_INVALID_IDENTIFIER = re.compile(r'[/`"\\\s]')


class BackupMode(Enum):
    """
    Represents supported backup modes.
    """
    FULL = 'full'
    INCREMENTAL = 'incremental'


class TableRef:
    """
    A table qualified with its database.
    """

    def __init__(self, database: str, table: str):
        self.database = database
        self.table = table

    def __str__(self):
        return f'{self.database}.{self.table}'

    def __repr__(self):
        return f'TableRef({self.database!r}, {self.table!r})'

    def __eq__(self, other):
        if not isinstance(other, TableRef):
            return NotImplemented
        return (self.database, self.table) == (other.database, other.table)

    def __hash__(self):
        return hash((self.database, self.table))

    @property
    def qualified_name(self) -> str:
        """
        Quoted name for usage in queries.
        """
        return f'`{self.database}`.`{self.table}`'

    @classmethod
    def parse(cls, name: str, default_database: str) -> 'TableRef':
        """
        Parse a table name. Unqualified names belong to the default database.
        :param name: table or db.table
        :param default_database: database for unqualified names
        :return: parsed table
        """
        name = name.strip()
        parts = name.split('.') if '.' in name else [default_database, name]
        if len(parts) != 2:
            raise ConfigurationError(f'Invalid table name: {name} (expected table or db.table)')
        for part in parts:
            if not part:
                raise ConfigurationError(f'Invalid table name: {name} (empty identifier)')
            if _INVALID_IDENTIFIER.search(part):
                raise ConfigurationError(
                    f'Invalid table name: {name} '
                    '(/, quotes, backslashes and whitespace are not allowed)')
        return cls(*parts)


class BackupObject:
    """
    An existing backup in the bucket.
    """

    def __init__(self, prefix: str):
        """
        :param prefix: key of the backup folder. E.g.: db/table/2024-01-01T00.00.00.000Z/
        """
        self.prefix = prefix

    def __str__(self):
        return f'Backup {self.key}'

    def __repr__(self):
        return f'BackupObject({self.prefix!r})'

    @property
    def key(self) -> str:
        """
        prefix without the trailing slash
        """
        return self.prefix[:-1] if self.prefix.endswith('/') else self.prefix

    @property
    def name(self) -> str:
        """
        last segment of the key
        """
        return self.key.rsplit('/', 1)[-1]

    def _parsed(self) -> Optional[dict]:
        try:
            return parse_backup_name(self.name)
        except ValueError:
            return None

    @property
    def timestamp(self) -> Optional[datetime]:
        """
        timestamp of the run that created the backup. None for foreign names.
        """
        data = self._parsed()
        return data['timestamp'] if data else None

    @property
    def is_chain_start(self) -> bool:
        """
        First backup of an incremental chain.
        """
        data = self._parsed()
        return bool(data and data['chain_start'])


class BackupPlan:
    """
    Where the next backup of a table goes and what it is based on.
    """

    def __init__(self, target_key: str, base_key: Optional[str] = None,
                 storage_url: str = ''):
        """
        :param target_key: key of the new backup relative to the bucket
        :param base_key: key of the base backup. None for full backups
        :param storage_url: endpoint/bucket
        """
        self.target_key = target_key
        self.base_key = base_key
        self.storage_url = storage_url.rstrip('/')

    def __str__(self):
        if self.is_incremental:
            return f'Incremental backup {self.target} based on {self.base}'
        return f'Full backup {self.target}'

    def _url(self, key: str) -> str:
        return f'{self.storage_url}/{key}' if self.storage_url else key

    @property
    def is_incremental(self) -> bool:
        return self.base_key is not None

    @property
    def target(self) -> str:
        """
        URL of the new backup
        """
        return self._url(self.target_key)

    @property
    def base(self) -> Optional[str]:
        """
        URL of the base backup
        """
        return self._url(self.base_key) if self.base_key is not None else None


class BackupRunResult:
    """
    Outcome of the backup of one table.
    """

    def __init__(self, table: TableRef, plan: Optional[BackupPlan] = None,
                 result: Optional[Dict[str, Any]] = None,
                 error: Optional[Exception] = None):
        self.table = table
        self.plan = plan
        self.result = result
        self.error = error

    def __str__(self):
        if self.succeeded:
            return f'{self.table}: OK'
        return f'{self.table}: FAILED ({self.error})'

    @property
    def succeeded(self) -> bool:
        return self.error is None


class RunReport:
    """
    Results of all tables of one run.
    """

    def __init__(self, run_timestamp: str):
        self.run_timestamp = run_timestamp
        self.results: List[BackupRunResult] = []

    def __len__(self):
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    def append(self, result: BackupRunResult):
        self.results.append(result)

    @property
    def failed(self) -> List[BackupRunResult]:
        return [x for x in self.results if not x.succeeded]

    @property
    def succeeded(self) -> bool:
        return len(self.failed) == 0
