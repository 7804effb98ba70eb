"""
helpers for converting values from one format to a different one
"""
import re
from datetime import datetime, timezone

# ISO-8601 with ':' replaced by '.' -> safe for URLs and file names.
# Fixed width, so sorting the strings sorts the timestamps.
TIMESTAMP_FORMAT = '%Y-%m-%dT%H.%M.%S'
FULL_SUFFIX = '_full'

_BACKUP_NAME = re.compile(
    r'^(\d{4}-\d{2}-\d{2}T\d{2}\.\d{2}\.\d{2}\.\d{3}Z)(' + FULL_SUFFIX + r')?/?$'
)


def object_name(database: str, table: str) -> str:
    """
    Object storage prefix of all backups of a table.
    :param database: database name
    :param table: table name
    :return: database/table
    """
    return f'{database}/{table}'


def format_timestamp(timestamp: datetime) -> str:
    """
    Convert the given datetime object to the correct string.
    Naive datetimes are treated as UTC.
    :param timestamp: datetime object
    :return: formatted time. E.g.: 2024-01-01T00.00.00.000Z
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    timestamp = timestamp.astimezone(timezone.utc)
    return f'{timestamp.strftime(TIMESTAMP_FORMAT)}.{timestamp.microsecond // 1000:03d}Z'


def parse_timestamp(timestamp: str) -> datetime:
    """
    Convert the given timestamp string to a datetime object.
    Format: see format_timestamp
    :param timestamp: timestamp to parse
    :return: parsed timestamp (UTC)
    """
    match = re.match(r'^(.+)\.(\d{3})Z$', timestamp)
    if not match:
        raise ValueError(f'Invalid timestamp: {timestamp}')
    parsed = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    return parsed.replace(microsecond=int(match.group(2)) * 1000, tzinfo=timezone.utc)


def parse_backup_name(name: str) -> dict:
    """
    Parse the name of a backup folder.
    <timestamp> or <timestamp>_full. A trailing slash is ignored.
    :param name: last segment of the backup prefix
    :return: Dictionary with keys: timestamp, chain_start
    """
    match = _BACKUP_NAME.match(name)
    if not match:
        raise ValueError(f'Invalid backup name: {name}')
    return {
        'timestamp': parse_timestamp(match.group(1)),
        'chain_start': match.group(2) is not None,
    }
