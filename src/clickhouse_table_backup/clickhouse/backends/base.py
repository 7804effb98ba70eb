from abc import ABC, abstractmethod
from typing import List

from clickhouse_table_backup.utils.datatypes import BackupObject


class Backend(ABC):
    """
    ABC for storage backend implementations.
    Implements how to check the bucket and load existing backups from a backend.
    """

    @property
    @abstractmethod
    def storage_url(self) -> str:
        """
        URL of the bucket as seen by ClickHouse. Backup targets are relative to it.
        """

    @abstractmethod
    def bucket_exists(self) -> bool:
        """
        Whether the configured bucket exists.
        """
        pass

    @abstractmethod
    def list_backups(self, prefix: str) -> List[BackupObject]:
        """
        Returns the backups directly below the given prefix. (Not recursive)
        :param prefix: table prefix ending with a slash
        """
        pass
