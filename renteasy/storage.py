"""Shop image storage on a MinIO / S3-compatible object store.

Images are written to a public-read bucket and referenced from shop documents by URL.

Local Docker Example:

    .. code-block:: bash

        $ docker run --rm --name minio \\
            -p 9000:9000 \\
            -p 9001:9001 \\
            -e MINIO_ROOT_USER=minioadmin \\
            -e MINIO_ROOT_PASSWORD=minioadmin \\
            minio/minio server /data --console-address ":9001"
"""

import io
import json
import mimetypes
import uuid
from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from minio import Minio
from minio.error import S3Error

from renteasy.core import get_logger

SHOP_IMAGE_PREFIX = "shops"


def public_read_policy(bucket: str) -> str:
    """Bucket policy allowing anonymous GET on every object."""
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{bucket}/*"],
                }
            ],
        }
    )


def image_extension(filename: Optional[str], content_type: Optional[str]) -> str:
    suffix = PurePosixPath(filename or "").suffix.lower()
    if suffix:
        return suffix
    return (mimetypes.guess_extension(content_type or "") or "").lower()


class ImageStore:
    """A thin wrapper around the Minio client for shop images.

    Example:
        ```python
        images = ImageStore(
            "shop-images",
            endpoint="localhost:9000",
            access_key="minioadmin",
            secret_key="minioadmin",
            secure=False,
        )
        url = images.upload(data, filename="front.jpg", content_type="image/jpeg")
        images.delete([url])
        ```
    """

    def __init__(
        self,
        bucket_name: str,
        *,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = True,
        public_url: Optional[str] = None,
        ensure_bucket: bool = True,
    ) -> None:
        """Initialize an ImageStore.

        Args:
            bucket_name: Name of the bucket holding shop images.
            endpoint: MinIO/S3 server endpoint (e.g., "localhost:9000").
            access_key: Access key for authentication.
            secret_key: Secret key for authentication.
            secure: Whether to use HTTPS.
            public_url: Base URL clients use to fetch objects. Defaults to the endpoint.
            ensure_bucket: If True, create the bucket (with a public-read policy) when missing.
        """
        self.logger = get_logger("storage")
        self.client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
        )
        self.bucket_name = bucket_name
        protocol = "https" if secure else "http"
        self.public_url = (public_url or f"{protocol}://{endpoint}").rstrip("/")

        if ensure_bucket:
            self.ensure_bucket()

    def ensure_bucket(self) -> None:
        """Create the bucket with a public-read policy unless it already exists."""
        if self.client.bucket_exists(self.bucket_name):
            return
        self.client.make_bucket(self.bucket_name)
        self.client.set_bucket_policy(self.bucket_name, public_read_policy(self.bucket_name))
        self.logger.info("Created image bucket", bucket=self.bucket_name)

    @property
    def base_url(self) -> str:
        return f"{self.public_url}/{self.bucket_name}/"

    def url_for(self, object_name: str) -> str:
        return self.base_url + object_name

    def object_name_from_url(self, url: str) -> Optional[str]:
        """The object key for a URL produced by this store, None for foreign URLs."""
        if not url or not url.startswith(self.base_url):
            return None
        return url[len(self.base_url) :] or None

    def upload(self, data: bytes, *, filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
        """Store one image under a fresh key and return its public URL."""
        object_name = f"{SHOP_IMAGE_PREFIX}/{uuid.uuid4().hex}{image_extension(filename, content_type)}"
        self.client.put_object(
            self.bucket_name,
            object_name,
            io.BytesIO(data),
            len(data),
            content_type=content_type or "application/octet-stream",
        )
        self.logger.debug("Uploaded image", object_name=object_name, size=len(data))
        return self.url_for(object_name)

    def delete(self, urls: Iterable[str]) -> List[str]:
        """Remove the objects behind the given URLs. Returns the keys actually removed.

        Missing objects and foreign URLs are skipped; other object store errors propagate.
        """
        removed = []
        for url in urls:
            object_name = self.object_name_from_url(url)
            if object_name is None:
                continue
            try:
                self.client.remove_object(self.bucket_name, object_name)
            except S3Error as e:
                if e.code == "NoSuchKey":
                    continue
                raise
            removed.append(object_name)
        return removed
