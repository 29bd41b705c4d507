"""
File storage for uploaded attachments.

Provides:
- LocalFileService: files written below a local directory and served as
  static files
- BlobService: objects stored in an S3-compatible bucket (MinIO, AWS S3)
  through aioboto3
- build_file_service(): picks the implementation from settings

Uploaded files receive a random name, keeping only the extension supplied by
the caller.
"""

import uuid
from pathlib import Path
from typing import BinaryIO, Protocol

import aioboto3
import structlog
from botocore.config import Config
from botocore.exceptions import ClientError
from starlette.concurrency import run_in_threadpool

from api.src.config import LOCAL_FILE_SERVICE, FileServiceOptions, Settings

logger = structlog.get_logger(__name__)


def _new_file_name(extension: str) -> str:
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return f"{uuid.uuid4()}{extension}"


class FileService(Protocol):
    """Stores uploaded files and returns their public URL."""

    async def initialize(self) -> None:
        ...

    async def upload_from_stream(self, stream: BinaryIO, mime_type: str, extension: str) -> str:
        ...


class LocalFileService:
    """File service writing into a local directory."""

    def __init__(self, options: FileServiceOptions):
        """
        Initialize local file service.

        Args:
            options: File service options (storage_path, container, public_url)
        """
        self.directory = Path(options.storage_path) / options.container
        self.base_url = f"{options.public_url.rstrip('/')}/{options.container}"

    async def initialize(self) -> None:
        """Create the upload directory if it does not exist."""
        await run_in_threadpool(self.directory.mkdir, parents=True, exist_ok=True)
        logger.info("local_storage_initialized", directory=str(self.directory))

    async def upload_from_stream(self, stream: BinaryIO, mime_type: str, extension: str) -> str:
        """
        Write a stream to a new file.

        Args:
            stream: Readable binary stream
            mime_type: Content type (not persisted for local files)
            extension: File extension, with or without the leading dot

        Returns:
            Public URL of the stored file
        """
        name = _new_file_name(extension)
        target = self.directory / name

        def _write() -> int:
            with open(target, "wb") as f:
                return f.write(stream.read())

        size = await run_in_threadpool(_write)

        logger.info("file_stored", path=str(target), size=size, mime_type=mime_type)
        return f"{self.base_url}/{name}"


class BlobService:
    """File service backed by an S3-compatible bucket."""

    def __init__(self, options: FileServiceOptions, session: aioboto3.Session = None):
        """
        Initialize blob service.

        Args:
            options: File service options (blob endpoint, credentials, container)
            session: aioboto3 session (created when omitted)
        """
        self.endpoint_url = options.blob_endpoint.rstrip("/")
        self.bucket = options.container
        self.access_key = options.blob_access_key
        self.secret_key = options.blob_secret_key
        self.region = options.blob_region

        self.config = Config(
            retries={
                'max_attempts': 3,
                'mode': 'adaptive'
            }
        )

        self.session = session or aioboto3.Session()

    def get_client(self):
        """
        Get an async S3 client context manager.

        Usage:
            async with blob_service.get_client() as s3:
                await s3.put_object(...)
        """
        return self.session.client(
            's3',
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=self.config
        )

    async def initialize(self) -> None:
        """Create the bucket if it does not exist."""
        async with self.get_client() as s3:
            try:
                await s3.head_bucket(Bucket=self.bucket)
                logger.debug("bucket_already_exists", bucket=self.bucket)
                return
            except ClientError:
                pass

            try:
                await s3.create_bucket(Bucket=self.bucket)
                logger.info("bucket_created", bucket=self.bucket)
            except ClientError as e:
                error_code = e.response.get('Error', {}).get('Code')
                if error_code in ('BucketAlreadyOwnedByYou', 'BucketAlreadyExists'):
                    logger.debug("bucket_already_exists", bucket=self.bucket)
                    return
                logger.error("bucket_creation_failed", bucket=self.bucket, error=str(e))
                raise

    async def upload_from_stream(self, stream: BinaryIO, mime_type: str, extension: str) -> str:
        """
        Upload a stream as a new object.

        Args:
            stream: Readable binary stream
            mime_type: Content type stored with the object
            extension: File extension, with or without the leading dot

        Returns:
            URL of the uploaded object
        """
        key = _new_file_name(extension)
        body = await run_in_threadpool(stream.read)

        try:
            async with self.get_client() as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentType=mime_type
                )
        except ClientError as e:
            logger.error("blob_upload_failed", bucket=self.bucket, key=key, error=str(e))
            raise

        logger.info("blob_uploaded", bucket=self.bucket, key=key, size=len(body))
        return f"{self.endpoint_url}/{self.bucket}/{key}"


def build_file_service(settings: Settings) -> FileService:
    """
    Select the file service implementation.

    LocalFileService when configured, the blob service otherwise.

    Args:
        settings: Application settings

    Returns:
        File service instance
    """
    options = settings.file_service

    if options.type == LOCAL_FILE_SERVICE:
        service = LocalFileService(options)
    else:
        service = BlobService(options)

    logger.info("file_service_selected", implementation=type(service).__name__)
    return service
