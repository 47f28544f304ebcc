# Standard Library
import os
import time
import posixpath
import uuid
import base64
import logging
from io import BytesIO
from urllib.parse import unquote

# Third-party
from asgiref.sync import sync_to_async
from PIL import Image as PILImage, UnidentifiedImageError

# Local Imports
from .errors import AssetError, StoreError

logger = logging.getLogger(__name__)

_FORMAT_TO_EXT = {
    "jpeg": "jpg",
    "png": "png",
    "webp": "webp",
    "gif": "gif",
    "bmp": "bmp",
    "tiff": "tiff",
    "ico": "ico",
}


def _is_data_url(s) -> bool:
    return isinstance(s, str) and s.startswith("data:image/")


def _read_upload(file_or_base64):
    """Return (bytes, original_name) for a data URL or a file-like upload."""
    if _is_data_url(file_or_base64):
        header, encoded = file_or_base64.split(",", 1)
        file_ext = header.split("/")[1].split(";")[0]
        return base64.b64decode(encoded), f"upload.{file_ext}"

    if isinstance(file_or_base64, (bytes, bytearray)):
        return bytes(file_or_base64), ""

    name = os.path.basename(getattr(file_or_base64, "name", "") or "")
    if hasattr(file_or_base64, "seek"):
        file_or_base64.seek(0)
    return file_or_base64.read(), name


def _image_format(content: bytes) -> str:
    """Pillow's format name for ``content``; AssetError when it is not an image."""
    try:
        img = PILImage.open(BytesIO(content))
        img.verify()  # catches truncated files early
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise AssetError(f"Uploaded file is not a valid image: {e}") from e
    return (img.format or "").lower()


class AssetManager:
    """
    Binary asset lifecycle for entity images.

    Keys look like ``<folder>/<millis>_<random>.<ext>``; uniqueness is
    probabilistic and a collision is left unhandled.
    """

    def __init__(self, store, bucket="images", verify_images=True):
        self.store = store
        self.bucket = bucket
        self.verify_images = verify_images

    @staticmethod
    def build_key(folder, ext):
        millis = int(time.time() * 1000)
        return f"{folder}/{millis}_{uuid.uuid4().hex[:12]}.{ext}"

    def _prepare(self, file):
        """Read an upload and sniff its image format; blocking, run off the loop."""
        try:
            content, name = _read_upload(file)
        except (OSError, ValueError) as e:
            raise AssetError(f"Could not read upload: {e}") from e
        if not content:
            raise AssetError("Uploaded file is empty")
        fmt = _image_format(content) if self.verify_images else ""
        return content, name, fmt

    async def upload_file(self, file, folder="general"):
        content, name, fmt = await sync_to_async(self._prepare)(file)
        if "." in name:
            ext = name.rsplit(".", 1)[-1]
        else:
            ext = _FORMAT_TO_EXT.get(fmt, "bin")

        key = self.build_key(folder, ext)
        try:
            stored = await self.store.upload_object(self.bucket, key, content)
        except StoreError as err:
            logger.warning("Upload of %s failed: %s", key, err)
            raise AssetError(f"Image upload failed: {err.message}") from err

        logger.info("Uploaded %s/%s (%d bytes)", self.bucket, stored, len(content))
        return self.store.get_public_url(self.bucket, stored)

    async def upload_many(self, files, folder="general"):
        """
        Upload one at a time, each awaited before the next. On failure the
        raised AssetError carries ``uploaded`` with the URLs that made it.
        """
        uploaded = []
        for file in files:
            try:
                uploaded.append(await self.upload_file(file, folder))
            except AssetError as err:
                err.uploaded = list(uploaded)
                raise
        return uploaded

    def key_for(self, url):
        """Object key behind one of our public URLs, or None for foreign URLs."""
        if not url:
            return None
        prefix = self.store.public_url_prefix(self.bucket)
        if not url.startswith(prefix):
            return None
        key = unquote(url[len(prefix):].split("?", 1)[0])
        if not key:
            return None
        # must already be canonical and stay inside the bucket
        normalized = posixpath.normpath(key)
        if normalized != key or normalized.startswith(("/", "..")):
            return None
        return key

    async def delete_file(self, url):
        key = self.key_for(url)
        if key is None:
            # pasted/external URL or nothing at all: treat as already gone
            logger.debug("Skipping delete of non-bucket asset %r", url)
            return False
        try:
            await self.store.delete_object(self.bucket, key)
        except StoreError as err:
            raise AssetError(f"Image delete failed: {err.message}") from err
        logger.info("Deleted %s/%s", self.bucket, key)
        return True

    async def delete_many(self, urls):
        """Best-effort purge; returns the URLs that could not be removed."""
        leftovers = []
        for url in urls or []:
            try:
                await self.delete_file(url)
            except AssetError as err:
                logger.warning("Could not purge %s: %s", url, err)
                leftovers.append(url)
        return leftovers
