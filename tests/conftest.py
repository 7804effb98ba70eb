from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from botocore.exceptions import ClientError  # noqa: E402

from clickhouse_table_backup.clickhouse.backends.base import Backend  # noqa: E402
from clickhouse_table_backup.errors import BackupEngineError  # noqa: E402
from clickhouse_table_backup.utils.datatypes import BackupObject  # noqa: E402


class FakeBackend(Backend):
    def __init__(self, objects=None, exists=True, failing_prefixes=()):
        self.objects = objects or {}
        self.exists = exists
        self.failing_prefixes = set(failing_prefixes)
        self.calls = []

    @property
    def storage_url(self) -> str:
        return "http://minio:9000/backups"

    def bucket_exists(self) -> bool:
        self.calls.append(("bucket_exists",))
        return self.exists

    def list_backups(self, prefix):
        self.calls.append(("list_backups", prefix))
        if prefix in self.failing_prefixes:
            raise ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
                "ListObjectsV2",
            )
        return [BackupObject(x) for x in self.objects.get(prefix, [])]


class FakeClickHouse:
    address = "localhost:9000"

    def __init__(self, reachable=True, failing_tables=()):
        self.reachable = reachable
        self.failing_tables = set(failing_tables)
        self.calls = []

    def ping(self):
        self.calls.append(("ping",))
        return self.reachable

    def backup_table(self, table, plan, access_key, secret_key):
        self.calls.append(("backup_table", str(table), plan.target, plan.base))
        if str(table) in self.failing_tables:
            raise BackupEngineError(table, plan.target, "Code: 60. Table does not exist")
        return {"id": f"id-{table}", "status": "BACKUP_CREATED", "error": ""}

    @property
    def backups(self):
        return [c[1:] for c in self.calls if c[0] == "backup_table"]


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def make_ch():
    return FakeClickHouse
