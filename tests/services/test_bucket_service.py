import hashlib
from dataclasses import replace
from datetime import datetime, timezone

import httpx
import pytest

from application.dto import UploadedFileDTO
from application.ports.storage import ObjectStorePort, StoredUpload
from application.services.bucket_service import BucketService
from core.config import S3Settings
from domain.bucket import RenamePolicy, S3Object
from infrastructure.adapters.storage_port import ObjectStorePortAdapter
from infrastructure.external.storage import (
    ConfigurationError,
    FilesystemError,
    InvalidKeyError,
    ProtocolError,
    S3Provider,
)

NOW = datetime(2024, 3, 5, 12, 30, 45, tzinfo=timezone.utc)
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class StubStore(ObjectStorePort):
    def __init__(self, failing_keys=()):
        self.uploads = []
        self.failing_keys = set(failing_keys)

    async def upload(self, data, key, content_type, config, on_progress=None):  # type: ignore[override]
        if key in self.failing_keys:
            raise ProtocolError(f"Upload failed: 500 - boom {key}", status_code=500, body="boom")
        self.uploads.append((key, content_type, data))
        if on_progress is not None:
            on_progress(1.0)
        return StoredUpload(
            key=key,
            url=f"https://cdn/{key}",
            size=len(data),
            content_type=content_type,
            payload_sha256=hashlib.sha256(data).hexdigest(),
        )

    async def list_objects(self, config, max_keys=None):  # type: ignore[override]
        return [S3Object(key="a.txt", size=1, last_modified=NOW)]

    async def download(self, key, destination, config, overwrite=False, on_progress=None):  # type: ignore[override]
        return destination

    async def delete(self, key, config):  # type: ignore[override]
        return True

    def build_url(self, key, config, template=None, basename=None):  # type: ignore[override]
        return f"https://cdn/{key}"


def _service(store) -> BucketService:
    return BucketService(store, clock=lambda: NOW, token_factory=lambda: "ABCD1234")


@pytest.mark.asyncio
async def test_upload_applies_rename_and_content_type(aws_config):
    store = StubStore()
    config = replace(aws_config, rename_policy=RenamePolicy.hash("sha256"))

    outcome = await _service(store).upload(b"", "x.png", config)

    assert outcome.key == f"img/{EMPTY_SHA256}.png"
    assert outcome.content_type == "image/png"
    assert outcome.content_hash == EMPTY_SHA256
    assert outcome.filename == "x.png"
    assert outcome.uploaded_at == NOW
    assert store.uploads == [(f"img/{EMPTY_SHA256}.png", "image/png", b"")]


@pytest.mark.asyncio
async def test_upload_without_rename_hash_reports_payload_hash(aws_config):
    outcome = await _service(StubStore()).upload(b"abc", "notes.txt", aws_config)
    assert outcome.key == "img/notes.txt"
    assert outcome.content_type == "text/plain"
    assert outcome.content_hash == hashlib.sha256(b"abc").hexdigest()


@pytest.mark.asyncio
async def test_upload_outcome_synthesizes_listing_entry(aws_config):
    outcome = await _service(StubStore()).upload(b"abc", "notes.txt", aws_config)
    obj = outcome.to_object()
    assert obj == S3Object(key="img/notes.txt", size=3, last_modified=NOW)
    assert obj.filename == "notes.txt"


def test_outcome_serializes_utc_z():
    dto = UploadedFileDTO(
        key="k", url="u", filename="k", content_type="text/plain", size=0, uploaded_at=NOW
    )
    assert dto.model_dump()["uploaded_at"] == "2024-03-05T12:30:45Z"


@pytest.mark.asyncio
async def test_unconfigured_raises_before_store_or_filesystem(unconfigured_config, tmp_path):
    store = StubStore()
    service = _service(store)

    with pytest.raises(ConfigurationError):
        await service.upload(b"x", "a.txt", unconfigured_config)
    with pytest.raises(ConfigurationError):
        await service.upload_file(tmp_path / "does-not-exist.txt", unconfigured_config)
    with pytest.raises(ConfigurationError):
        await service.upload_many([tmp_path / "a.txt"], unconfigured_config)
    with pytest.raises(ConfigurationError):
        await service.list(unconfigured_config)
    with pytest.raises(ConfigurationError):
        await service.delete("k", unconfigured_config)

    assert store.uploads == []


@pytest.mark.asyncio
async def test_upload_file_reads_from_disk(aws_config, tmp_path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"jpeg-bytes")
    store = StubStore()

    outcome = await _service(store).upload_file(path, aws_config)

    assert outcome.key == "img/photo.jpg"
    assert outcome.content_type == "image/jpeg"
    assert store.uploads[0][2] == b"jpeg-bytes"


@pytest.mark.asyncio
async def test_upload_file_missing_is_filesystem_error(aws_config, tmp_path):
    with pytest.raises(FilesystemError) as exc_info:
        await _service(StubStore()).upload_file(tmp_path / "missing.txt", aws_config)
    assert exc_info.value.path == str(tmp_path / "missing.txt")


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrency", [1, 3])
async def test_upload_many_isolates_failures(aws_config, tmp_path, concurrency):
    paths = []
    for name in ("a.txt", "b.txt", "c.txt"):
        path = tmp_path / name
        path.write_bytes(name.encode())
        paths.append(path)
    paths.insert(1, tmp_path / "missing.txt")
    store = StubStore(failing_keys={"img/b.txt"})
    progress = []

    items = await _service(store).upload_many(
        paths, aws_config, concurrency=concurrency, on_progress=lambda index, value: progress.append((index, value))
    )

    assert [item.filename for item in items] == ["a.txt", "missing.txt", "b.txt", "c.txt"]
    assert [item.ok for item in items] == [True, False, False, True]
    assert "Could not read" in items[1].error
    assert "500" in items[2].error
    assert items[3].result.key == "img/c.txt"
    assert sorted(progress) == [(0, 1.0), (3, 1.0)]


@pytest.mark.asyncio
async def test_upload_rejects_name_that_is_not_utf8(aws_config):
    store = StubStore()

    with pytest.raises(InvalidKeyError) as exc_info:
        await _service(store).upload(b"x", "bad\udcff.txt", aws_config)

    assert "bad\ufffd.txt" in exc_info.value.message
    assert store.uploads == []


@pytest.mark.asyncio
async def test_upload_many_keeps_going_past_undecodable_name(aws_config, tmp_path):
    bad = tmp_path / "bad\udcff.txt"
    bad.write_bytes(b"bad")
    good = tmp_path / "good.txt"
    good.write_bytes(b"good")
    store = StubStore()

    items = await _service(store).upload_many([bad, good], aws_config, concurrency=2)

    assert [item.filename for item in items] == ["bad\ufffd.txt", "good.txt"]
    assert [item.ok for item in items] == [False, True]
    assert "not valid UTF-8" in items[0].error
    assert store.uploads == [("img/good.txt", "text/plain", b"good")]


@pytest.mark.asyncio
async def test_list_download_delete_delegate(aws_config, tmp_path):
    service = _service(StubStore())
    assert [obj.key for obj in await service.list(aws_config)] == ["a.txt"]
    assert await service.download("a.txt", tmp_path / "a.txt", aws_config) == tmp_path / "a.txt"
    assert await service.delete("a.txt", aws_config) is True


def test_template_urls_and_bucket_uri(aws_config):
    service = _service(StubStore())
    urls = service.template_urls("img/a.png", aws_config)
    assert list(urls) == ["AWS Direct"]
    assert service.bucket_uri(aws_config) == "s3://my-bucket/img/"


@pytest.mark.asyncio
async def test_end_to_end_through_adapter(aws_config):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    provider = S3Provider(
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        s3_settings=S3Settings(),
        clock=lambda: NOW,
    )
    service = _service(ObjectStorePortAdapter(provider))
    config = replace(aws_config, rename_policy=RenamePolicy.custom("${basename}-${uuid}${ext}"))

    outcome = await service.upload(b"hello", "a b.png", config)

    assert outcome.key == "img/a b-ABCD1234.png"
    assert outcome.url == "https://my-bucket.s3.us-east-1.amazonaws.com/img/a%20b-ABCD1234.png"
    assert requests[0].url.raw_path == b"/img/a%20b-ABCD1234.png"
    assert requests[0].headers["content-type"] == "image/png"
