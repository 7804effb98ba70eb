import os
from pathlib import Path

from loguru import logger


def setup_logging(log_dir: Path, log_level: str) -> int:
    """
    Log to <log_dir>/clickhouse-table-backup.log in addition to stderr.
    :return: id of the loguru handler
    """
    if not os.path.isdir(log_dir):
        os.makedirs(log_dir, exist_ok=True)
    format_string = '{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}'
    return logger.add(Path(log_dir) / 'clickhouse-table-backup.log',
                      format=format_string,
                      rotation='00:00',
                      retention='14 days',
                      level=log_level,
                      backtrace=True,
                      diagnose=True)
