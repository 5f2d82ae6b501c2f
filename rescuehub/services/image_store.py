"""Image storage: validate uploads, save originals, generate thumbnails.

Files live under ``<base_dir>/<kind>/`` (``kind`` is e.g. ``rescue`` or
``dogs``) with thumbnails in ``<base_dir>/<kind>/thumbnails/``. Callers get
back URL paths under ``url_prefix``, which the app serves statically.
"""

from __future__ import annotations

import asyncio
import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from rescuehub.config import UploadConfig
from rescuehub.services.errors import ValidationError

logger = logging.getLogger(__name__)

_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp", "GIF": ".gif"}


@dataclass(frozen=True)
class Upload:
    filename: str
    data: bytes


class UploadStore:
    """Owns the uploads directory. One instance per app, on ``app.state``."""

    def __init__(self, config: UploadConfig):
        self.base_dir = Path(config.base_dir)
        self.url_prefix = config.url_prefix.rstrip("/")
        self.max_files = config.max_images_per_request
        self.max_bytes = config.max_bytes
        self.thumbnail_size = tuple(config.thumbnail_size)

    def _check(self, upload: Upload) -> str:
        """Return the stored extension, or raise ValidationError."""
        if not upload.data:
            raise ValidationError(f"{upload.filename or 'upload'} is empty")
        if len(upload.data) > self.max_bytes:
            raise ValidationError(f"{upload.filename or 'upload'} is too large")
        try:
            with Image.open(io.BytesIO(upload.data)) as img:
                fmt = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(f"{upload.filename or 'upload'} is not a valid image") from e
        if fmt not in _EXTENSIONS:
            raise ValidationError(f"Unsupported image format: {fmt}")
        return _EXTENSIONS[fmt]

    def _save_sync(self, data: bytes, kind: str, ext: str) -> str:
        orig_dir = self.base_dir / kind
        thumb_dir = orig_dir / "thumbnails"
        orig_dir.mkdir(parents=True, exist_ok=True)
        thumb_dir.mkdir(parents=True, exist_ok=True)

        name = uuid.uuid4().hex
        (orig_dir / f"{name}{ext}").write_bytes(data)

        img = Image.open(io.BytesIO(data))
        thumb = img.convert("RGB")
        thumb.thumbnail(self.thumbnail_size)
        thumb.save(thumb_dir / f"{name}.jpg", "JPEG", quality=85)

        return f"{self.url_prefix}/{kind}/{name}{ext}"

    async def save_many(self, uploads: list[Upload], kind: str) -> list[str]:
        """Validate every upload, then write them all. Returns URL paths."""
        if len(uploads) > self.max_files:
            raise ValidationError(f"At most {self.max_files} images are allowed")
        exts = [self._check(u) for u in uploads]
        urls: list[str] = []
        try:
            for upload, ext in zip(uploads, exts):
                urls.append(await asyncio.to_thread(self._save_sync, upload.data, kind, ext))
        except OSError:
            self.remove(urls)
            raise
        return urls

    async def save(self, upload: Upload, kind: str) -> str:
        return (await self.save_many([upload], kind))[0]

    def path_for(self, url: str) -> Path | None:
        """Filesystem path of a URL returned by ``save``; None if it isn't ours."""
        prefix = self.url_prefix + "/"
        if not url or not url.startswith(prefix):
            return None
        rel = Path(url[len(prefix):])
        if ".." in rel.parts:
            return None
        return self.base_dir / rel

    def thumbnail_for(self, url: str) -> Path | None:
        path = self.path_for(url)
        if path is None:
            return None
        return path.parent / "thumbnails" / f"{path.stem}.jpg"

    def remove(self, urls: list[str]) -> None:
        for url in urls:
            for path in (self.path_for(url), self.thumbnail_for(url)):
                if path is not None:
                    path.unlink(missing_ok=True)
        if urls:
            logger.info("Removed %d uploaded image(s)", len(urls))
