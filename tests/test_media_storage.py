import asyncio
import io
import re

import pytest
from conftest import create_test_image, stored_files
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers, UploadFile

from minibook.core.exceptions import (
    EmptyPostError,
    MediaTooLargeError,
    UnsupportedMediaTypeError,
)
from minibook.models import Post, User
from minibook.services.post import PostService
from minibook.utils.file_upload import MediaStorage


def make_upload(data: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def storage(tmp_path):
    return MediaStorage(base_path=str(tmp_path / "media"), url_prefix="/uploads")


def test_storage_creates_partitions(storage):
    assert (storage.base_path / "images").is_dir()
    assert (storage.base_path / "videos").is_dir()


def test_generate_filename_pattern():
    name = MediaStorage.generate_filename(".jpg")
    assert re.fullmatch(r"post-\d{13}-\d{1,9}\.jpg", name)


@pytest.mark.parametrize(
    "content_type, kind",
    [("image/png", "image"), ("IMAGE/JPEG", "image"), ("video/mp4", "video")],
)
def test_classify(content_type, kind):
    assert MediaStorage.classify(content_type) == kind


@pytest.mark.parametrize("content_type", ["application/pdf", "text/plain", "", None])
def test_classify_rejects_other_types(content_type):
    with pytest.raises(UnsupportedMediaTypeError):
        MediaStorage.classify(content_type)


def test_save_and_delete(storage):
    stored = asyncio.run(
        storage.save(make_upload(create_test_image(), "cat.png", "image/png"))
    )

    assert stored.kind == "image"
    assert stored.url.startswith("/uploads/images/post-")
    assert stored.path.read_bytes() == create_test_image()
    assert stored.size == len(create_test_image())

    assert storage.delete(stored.url) is True
    assert not stored.path.exists()
    assert storage.delete(stored.url) is False


def test_extension_falls_back_to_mime_type(storage):
    stored = asyncio.run(storage.save(make_upload(b"data", "blob", "video/mp4")))
    assert stored.url.endswith(".mp4")


def test_oversized_upload_leaves_nothing(tmp_path):
    storage = MediaStorage(base_path=str(tmp_path / "media"), max_size_bytes=10)

    with pytest.raises(MediaTooLargeError):
        asyncio.run(storage.save(make_upload(b"x" * 11, "big.png", "image/png")))

    assert stored_files(storage.base_path) == []


def test_delete_refuses_paths_outside_store(storage, tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("keep me")

    assert storage.delete("/uploads/../secret.txt") is False
    assert storage.delete("/elsewhere/images/x.png") is False
    assert outside.exists()


def test_discard(storage):
    saved = [
        asyncio.run(storage.save(make_upload(b"abc", f"f{i}.png", "image/png")))
        for i in range(2)
    ]
    assert storage.discard(saved) == 2
    assert stored_files(storage.base_path) == []


# ------------------------------------------------------------------
# Post creation rollback
# ------------------------------------------------------------------
@pytest.fixture
def author(database):
    db = database.session()
    user = User(
        username="alice",
        email="alice@example.com",
        hashed_password="x",
        full_name="Alice",
    )
    db.add(user)
    db.commit()
    user_id = user.id
    db.close()
    return user_id


def test_failed_commit_removes_saved_files(database, storage, author, monkeypatch):
    db = database.session()
    service = PostService(db, storage)

    def failing_commit():
        raise OperationalError("INSERT INTO post_media", {}, Exception("disk full"))

    monkeypatch.setattr(db, "commit", failing_commit)

    uploads = [
        make_upload(create_test_image(), "a.png", "image/png"),
        make_upload(b"\x00\x00", "b.mp4", "video/mp4"),
    ]
    with pytest.raises(OperationalError):
        asyncio.run(service.create_post(author, "hello", uploads))
    db.close()

    assert stored_files(storage.base_path) == []
    check = database.session()
    try:
        assert check.query(Post).count() == 0
    finally:
        check.close()


def test_empty_post_rejected_by_service(database, storage, author):
    db = database.session()
    try:
        with pytest.raises(EmptyPostError):
            asyncio.run(PostService(db, storage).create_post(author, "  ", []))
    finally:
        db.close()
