"""Manifest download, upload and deletion endpoints."""

from __future__ import annotations

import io
from typing import BinaryIO, Protocol

from trow.errors import (
    InternalError,
    InvalidContentRangeError,
    InvalidManifestError,
    InvalidNameError,
    ManifestInvalid,
    ManifestUnknown,
    NameInvalid,
    StorageDriverError,
    Unsupported,
    UnsupportedOperationError,
)
from trow.types import (
    Digest,
    ManifestDeleted,
    ManifestReader,
    RegistryConfig,
    VerifiedManifest,
    parse_digest,
)

_MEBIBYTE = 1024 * 1024


class _ManifestBackend(Protocol):
    def get_manifest(self, repo_name: str, reference: str) -> ManifestReader: ...

    def store_manifest(self, repo_name: str, reference: str, data: BinaryIO) -> Digest: ...

    def delete_manifest(self, repo_name: str, digest: Digest) -> None: ...


def _over_limit(config: RegistryConfig) -> ManifestInvalid:
    return ManifestInvalid(f"Content over data limit {config.max_blob_size} mebibytes")


def _read_capped(chunk: bytes | BinaryIO | None, config: RegistryConfig) -> BinaryIO:
    """Load the manifest body, refusing bodies over the manifest size limit."""
    limit = config.max_manifest_size * _MEBIBYTE
    if chunk is None:
        body = b""
    elif isinstance(chunk, (bytes, bytearray)):
        body = bytes(chunk)
    else:
        body = chunk.read(limit + 1)
    if len(body) > limit:
        raise _over_limit(config)
    return io.BytesIO(body)


def get_manifest(
    client: _ManifestBackend, repo_name: str, reference: str
) -> ManifestReader:
    """GET /v2/<name>/manifests/<reference>; the reference is a tag or a digest."""
    try:
        return client.get_manifest(repo_name, reference)
    except StorageDriverError as exc:
        raise ManifestUnknown(reference) from exc


def put_image_manifest(
    client: _ManifestBackend,
    config: RegistryConfig,
    repo_name: str,
    reference: str,
    chunk: bytes | BinaryIO | None = None,
) -> VerifiedManifest:
    """PUT /v2/<name>/manifests/<reference>: store a manifest under a tag."""
    data = _read_capped(chunk, config)
    try:
        digest = client.store_manifest(repo_name, reference, data)
    except InvalidNameError as exc:
        raise NameInvalid(exc.name) from exc
    except InvalidManifestError as exc:
        raise ManifestInvalid("") from exc
    except InvalidContentRangeError as exc:
        raise _over_limit(config) from exc
    except StorageDriverError as exc:
        raise InternalError() from exc
    return VerifiedManifest(repo_name, digest, reference)


def delete_image_manifest(
    client: _ManifestBackend, repo_name: str, digest: str
) -> ManifestDeleted:
    """DELETE /v2/<name>/manifests/<digest>; deleting by tag is unsupported."""
    try:
        parsed = parse_digest(digest)
    except ValueError as exc:
        raise Unsupported() from exc
    try:
        client.delete_manifest(repo_name, parsed)
    except UnsupportedOperationError as exc:
        raise Unsupported() from exc
    except InvalidManifestError as exc:
        raise ManifestUnknown(repo_name) from exc
    except StorageDriverError as exc:
        raise InternalError() from exc
    return ManifestDeleted()