import io

import pytest
from PIL import Image

from rescuehub.config import UploadConfig
from rescuehub.services.errors import ValidationError
from rescuehub.services.image_store import Upload, UploadStore


@pytest.fixture
def jpeg_bytes():
    """Create test JPEG bytes from a solid-color image."""
    img = Image.new("RGB", (1920, 1440), color=(70, 130, 180))
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def store(tmp_path):
    return UploadStore(UploadConfig(
        base_dir=str(tmp_path / "uploads"), url_prefix="/uploads",
        max_images_per_request=2, max_bytes=5 * 1024 * 1024, thumbnail_size=(320, 240),
    ))


async def test_save_creates_original_and_thumbnail(store, jpeg_bytes):
    url = await store.save(Upload("dog.jpg", jpeg_bytes), kind="rescue")
    assert url.startswith("/uploads/rescue/")
    assert url.endswith(".jpg")

    original = store.path_for(url)
    thumb = store.thumbnail_for(url)
    assert original.is_file()
    assert thumb.is_file()
    with Image.open(thumb) as img:
        assert img.width <= 320
        assert img.height <= 240


async def test_invalid_file_writes_nothing(store, jpeg_bytes):
    with pytest.raises(ValidationError):
        await store.save_many([Upload("ok.jpg", jpeg_bytes), Upload("bad.jpg", b"not an image")], kind="rescue")
    assert not (store.base_dir / "rescue").exists()


async def test_too_many_files(store, jpeg_bytes):
    uploads = [Upload(f"{i}.jpg", jpeg_bytes) for i in range(3)]
    with pytest.raises(ValidationError):
        await store.save_many(uploads, kind="rescue")


async def test_oversized_file_rejected(store, jpeg_bytes):
    store.max_bytes = 10
    with pytest.raises(ValidationError):
        await store.save(Upload("big.jpg", jpeg_bytes), kind="dogs")


async def test_remove_deletes_both_files(store, jpeg_bytes):
    url = await store.save(Upload("dog.jpg", jpeg_bytes), kind="dogs")
    store.remove([url])
    assert not store.path_for(url).exists()
    assert not store.thumbnail_for(url).exists()


def test_path_for_rejects_foreign_urls(store):
    assert store.path_for("/static/x.jpg") is None
    assert store.path_for("/uploads/../etc/passwd") is None
