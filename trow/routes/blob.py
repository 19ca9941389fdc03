"""Blob download, upload and deletion endpoints."""

from __future__ import annotations

import io
from typing import BinaryIO, Protocol
from urllib.parse import unquote

from trow.content_info import ContentInfo
from trow.errors import (
    BlobUnknown,
    BlobUploadInvalid,
    DigestInvalid,
    InternalError,
    InvalidContentRangeError,
    InvalidDigestError,
    InvalidNameError,
    NameInvalid,
    RepositoryDepthError,
    StorageDriverError,
)
from trow.types import (
    AcceptedUpload,
    BlobDeleted,
    BlobReader,
    Digest,
    RegistryConfig,
    UploadInfo,
    parse_digest,
)

MAX_REPO_DEPTH = 5
_MEBIBYTE = 1024 * 1024
_U32_MASK = 0xFFFFFFFF


class _BlobBackend(Protocol):
    def get_blob(self, repo_name: str, digest: Digest) -> BlobReader: ...

    def start_blob_upload(self, repo_name: str) -> str: ...

    def store_blob_chunk(
        self, repo_name: str, uuid: str, info: ContentInfo | None, data: BinaryIO
    ) -> int: ...

    def complete_and_verify_blob_upload(
        self, repo_name: str, uuid: str, digest: Digest
    ) -> None: ...

    def delete_blob(self, repo_name: str, digest: Digest) -> None: ...


class _CappedReader(io.RawIOBase):
    """Reads at most ``limit`` bytes from a source and reports whether it held more."""

    def __init__(self, source: BinaryIO, limit: int) -> None:
        super().__init__()
        self._source = source
        self._limit = limit
        self._consumed = 0
        self._exhausted = False
        self._complete: bool | None = None

    def readable(self) -> bool:
        return True

    def read(self, size: int | None = -1) -> bytes:
        remaining = self._limit - self._consumed
        if size is None or size < 0 or size > remaining:
            size = remaining
        if size == 0 or self._exhausted:
            return b""
        data = self._source.read(size)
        if not data:
            self._exhausted = True
        self._consumed += len(data)
        return data

    def readinto(self, buffer) -> int:  # type: ignore[override]
        data = self.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    @property
    def complete(self) -> bool:
        """True if the whole source fitted within the limit."""
        if self._complete is None:
            self._complete = self._exhausted or not self._source.read(1)
        return self._complete


def _open(chunk: bytes | BinaryIO | None, config: RegistryConfig) -> _CappedReader:
    if chunk is None:
        chunk = b""
    source = io.BytesIO(chunk) if isinstance(chunk, (bytes, bytearray)) else chunk
    return _CappedReader(source, config.max_blob_size * _MEBIBYTE)


def _last_byte(size: int) -> int:
    return max((size & _U32_MASK) - 1, 0)


def _store(
    client: _BlobBackend,
    config: RegistryConfig,
    repo_name: str,
    uuid: str,
    info: ContentInfo | None,
    chunk: bytes | BinaryIO | None,
) -> int:
    data = _open(chunk, config)
    try:
        size = client.store_blob_chunk(repo_name, uuid, info, data)
    except InvalidNameError as exc:
        raise NameInvalid(exc.name) from exc
    except InvalidContentRangeError as exc:
        raise BlobUploadInvalid("Invalid Content Range") from exc
    except StorageDriverError as exc:
        raise InternalError() from exc
    if not data.complete:
        raise BlobUploadInvalid(
            f"Content over data limit {config.max_blob_size} mebibytes"
        )
    return size


def check_repo_depth(repo_name: str) -> str:
    """Return the name if it has at most five levels; raise RepositoryDepthError otherwise."""
    if len(repo_name.split("/")) > MAX_REPO_DEPTH:
        raise RepositoryDepthError(repo_name)
    return repo_name


def get_blob(client: _BlobBackend, repo_name: str, digest: str) -> BlobReader | None:
    """GET /v2/<name>/blobs/<digest>; None when the blob cannot be served."""
    try:
        parsed = parse_digest(digest)
    except ValueError:
        return None
    try:
        return client.get_blob(repo_name, parsed)
    except StorageDriverError:
        return None


def put_blob(
    client: _BlobBackend,
    config: RegistryConfig,
    repo_name: str,
    uuid: str,
    digest: str,
    chunk: bytes | BinaryIO | None = None,
) -> AcceptedUpload:
    """PUT /v2/<name>/blobs/uploads/<uuid>?digest=<digest>: store the last data and complete."""
    size = _store(client, config, repo_name, uuid, None, chunk)
    try:
        parsed = parse_digest(digest)
    except ValueError as exc:
        raise DigestInvalid() from exc
    try:
        client.complete_and_verify_blob_upload(repo_name, uuid, parsed)
    except InvalidDigestError as exc:
        raise DigestInvalid() from exc
    except StorageDriverError as exc:
        raise InternalError() from exc
    return AcceptedUpload(parsed, repo_name, uuid, (0, _last_byte(size)))


def patch_blob(
    client: _BlobBackend,
    config: RegistryConfig,
    repo_name: str,
    uuid: str,
    chunk: bytes | BinaryIO | None,
    info: ContentInfo | None = None,
) -> UploadInfo:
    """PATCH /v2/<name>/blobs/uploads/<uuid>: store a chunk of an upload."""
    size = _store(client, config, repo_name, uuid, info, chunk)
    return UploadInfo(uuid, repo_name, (0, _last_byte(size)))


def post_blob_upload(
    client: _BlobBackend,
    config: RegistryConfig,
    repo_name: str,
    query: str | None = None,
    chunk: bytes | BinaryIO | None = None,
) -> AcceptedUpload | UploadInfo:
    """POST /v2/<name>/blobs/uploads: start an upload, monolithic when ``digest=`` is given."""
    check_repo_depth(repo_name)
    try:
        uuid = client.start_blob_upload(repo_name)
    except InvalidNameError as exc:
        raise NameInvalid(exc.name) from exc
    except StorageDriverError as exc:
        raise InternalError() from exc

    if query is not None and query.startswith("digest="):
        digest = unquote(query[len("digest="):], errors="replace")
        return put_blob(client, config, repo_name, uuid, digest, chunk)
    return UploadInfo(uuid, repo_name, (0, 0))


def delete_blob(client: _BlobBackend, repo_name: str, digest: str) -> BlobDeleted:
    """DELETE /v2/<name>/blobs/<digest>."""
    try:
        parsed = parse_digest(digest)
    except ValueError as exc:
        raise DigestInvalid() from exc
    try:
        client.delete_blob(repo_name, parsed)
    except StorageDriverError as exc:
        raise BlobUnknown() from exc
    return BlobDeleted()