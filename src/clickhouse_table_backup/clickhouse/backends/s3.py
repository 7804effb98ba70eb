from typing import List, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError
from loguru import logger

from clickhouse_table_backup.clickhouse.backends.base import Backend
from clickhouse_table_backup.utils.datatypes import BackupObject


class S3Backend(Backend):
    """
    S3 backend for listing backups stored in a bucket.
    """

    def __init__(self, s3_endpoint: str, s3_bucket: str, s3_access_key_id: str,
                 s3_secret_access_key: str, s3_endpoint_local: Optional[str] = None,
                 s3_region: str = 'us-east-1'):
        """
        :param s3_endpoint: endpoint used by ClickHouse. Part of the backup URLs.
        :param s3_bucket: bucket holding the backups
        :param s3_access_key_id:
        :param s3_secret_access_key:
        :param s3_endpoint_local: endpoint used by this tool if it differs from s3_endpoint.
            E.g.: http://localhost:9000 while ClickHouse reaches MinIO via http://minio:9000
        :param s3_region:
        """
        self._s3_endpoint = s3_endpoint.rstrip('/')
        self._s3_endpoint_local = s3_endpoint_local or s3_endpoint
        self._s3_bucket = s3_bucket
        self._s3_access_key_id = s3_access_key_id
        self._s3_secret_access_key = s3_secret_access_key

        self.s3 = boto3.resource(
            's3',
            endpoint_url=self._s3_endpoint_local,
            aws_access_key_id=self._s3_access_key_id,
            aws_secret_access_key=self._s3_secret_access_key,
            aws_session_token=None,
            region_name=s3_region,
            config=Config(s3={'addressing_style': 'path'})
        )

    @property
    def storage_url(self) -> str:
        return f'{self._s3_endpoint}/{self._s3_bucket}'

    def bucket_exists(self) -> bool:
        try:
            self.s3.meta.client.head_bucket(Bucket=self._s3_bucket)
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchBucket'):
                return False
            raise
        return True

    def list_backups(self, prefix: str) -> List[BackupObject]:
        """
        Get the backup folders below the prefix.
        ClickHouse writes a backup as many objects below <prefix><name>/,
        so only the common prefixes are of interest.
        :param prefix: prefix ending with a slash
        :return: list with existing backups in listing order.
        """
        logger.debug(f'Listing s3://{self._s3_bucket}/{prefix}')
        paginator = self.s3.meta.client.get_paginator('list_objects_v2')
        backups = []
        for page in paginator.paginate(Bucket=self._s3_bucket, Prefix=prefix, Delimiter='/'):
            for entry in page.get('CommonPrefixes', []):
                backups.append(BackupObject(entry['Prefix']))
        return backups
