import hashlib
import io
import json
import os

import pytest

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
from trow.response import HttpRequest, respond
from trow.routes.blob import (
    check_repo_depth,
    delete_blob,
    get_blob,
    patch_blob,
    post_blob_upload,
    put_blob,
)
from trow.types import AcceptedUpload, BlobDeleted, BlobReader, RegistryConfig, UploadInfo


class FakeRegistry:
    def __init__(self, store_error=None, start_error=None, complete_error=None):
        self.uploads = {}
        self.blobs = {}
        self.counter = 0
        self.last_info = None
        self.store_error = store_error
        self.start_error = start_error
        self.complete_error = complete_error

    def start_blob_upload(self, repo_name):
        if self.start_error is not None:
            raise self.start_error
        if repo_name.startswith("f/"):
            raise InvalidNameError(repo_name)
        self.counter += 1
        uuid = f"upload-{self.counter}"
        self.uploads[uuid] = bytearray()
        return uuid

    def store_blob_chunk(self, repo_name, uuid, info, data):
        if self.store_error is not None:
            raise self.store_error
        if uuid not in self.uploads:
            raise StorageDriverError("unknown upload")
        self.last_info = info
        self.uploads[uuid] += data.read()
        return len(self.uploads[uuid])

    def complete_and_verify_blob_upload(self, repo_name, uuid, digest):
        if self.complete_error is not None:
            raise self.complete_error
        content = bytes(self.uploads.pop(uuid))
        if hashlib.sha256(content).hexdigest() != digest.hash:
            raise InvalidDigestError()
        self.blobs[(repo_name, str(digest))] = content

    def get_blob(self, repo_name, digest):
        try:
            content = self.blobs[(repo_name, str(digest))]
        except KeyError:
            raise StorageDriverError("missing") from None
        return BlobReader(digest, io.BytesIO(content))

    def delete_blob(self, repo_name, digest):
        if self.blobs.pop((repo_name, str(digest)), None) is None:
            raise StorageDriverError("missing")


def sha(content):
    return "sha256:" + hashlib.sha256(content).hexdigest()


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def config():
    return RegistryConfig()


def test_post_without_digest_starts_upload(registry, config):
    result = post_blob_upload(registry, config, "puttest")
    assert result == UploadInfo("upload-1", "puttest", (0, 0))
    response = respond(result, HttpRequest(headers={"Host": "trow.test"}))
    assert response.status == 202
    assert response.header("Range") == "0-0"
    assert response.header("Docker-Upload-UUID") == "upload-1"


def test_upload_with_put(registry, config):
    info = post_blob_upload(registry, config, "puttest")
    content = b"{}\n"
    result = put_blob(registry, config, "puttest", info.uuid, sha(content), content)
    assert isinstance(result, AcceptedUpload)
    assert result.range == (0, 2)
    assert str(result.digest) == sha(content)
    response = respond(result, HttpRequest(headers={"Host": "trow.test"}))
    assert response.status == 201
    assert response.header("Range") == "0-2"
    assert response.header("Location") == f"http://trow.test/v2/puttest/blobs/{sha(content)}"


def test_upload_with_post_and_percent_encoded_digest(registry, config):
    content = b"{ }\n"
    query = "digest=" + sha(content).replace(":", "%3A")
    result = post_blob_upload(registry, config, "posttest", query, content)
    assert isinstance(result, AcceptedUpload)
    assert result.range == (0, len(content) - 1)
    assert registry.blobs[("posttest", sha(content))] == content


def test_upload_layer_patch_then_put_then_get(registry, config):
    blob = os.urandom(100)
    info = post_blob_upload(registry, config, "onename")
    patched = patch_blob(registry, config, "onename", info.uuid, blob)
    assert patched.range == (0, 99)
    accepted = put_blob(registry, config, "onename", info.uuid, sha(blob))
    assert accepted.range == (0, 99)
    reader = get_blob(registry, "onename", sha(blob))
    assert reader is not None
    response = respond(reader, HttpRequest())
    assert response.status == 200
    assert response.body == blob
    assert response.header("Docker-Content-Digest") == sha(blob)


def test_patch_passes_content_info(registry, config):
    info = post_blob_upload(registry, config, "repo")
    ci = ContentInfo(4, (0, 3))
    patch_blob(registry, config, "repo", info.uuid, b"abcd", ci)
    assert registry.last_info == ci


def test_patch_accepts_stream(registry, config):
    info = post_blob_upload(registry, config, "repo")
    result = patch_blob(registry, config, "repo", info.uuid, io.BytesIO(b"hello"))
    assert result.range == (0, 4)


def test_sized_blob_within_limit_accepted(registry):
    config = RegistryConfig(max_blob_size=3)
    info = post_blob_upload(registry, config, "sized")
    result = patch_blob(registry, config, "sized", info.uuid, bytes(3 * 1024 * 1024 - 1))
    assert respond(result, HttpRequest()).status == 202


def test_sized_blob_over_limit_rejected(registry):
    config = RegistryConfig(max_blob_size=3)
    info = post_blob_upload(registry, config, "sized")
    with pytest.raises(BlobUploadInvalid) as excinfo:
        patch_blob(registry, config, "sized", info.uuid, bytes(3 * 1024 * 1024 + 1))
    assert excinfo.value.status == 416
    assert excinfo.value.detail == {"Reason": "Content over data limit 3 mebibytes"}


def test_put_over_limit_rejected(registry):
    config = RegistryConfig(max_blob_size=1)
    info = post_blob_upload(registry, config, "sized")
    content = bytes(1024 * 1024 + 1)
    with pytest.raises(BlobUploadInvalid):
        put_blob(registry, config, "sized", info.uuid, sha(content), content)


def test_six_level_name_rejected(registry, config):
    with pytest.raises(RepositoryDepthError) as excinfo:
        post_blob_upload(registry, config, "one/two/three/four/five/six")
    assert excinfo.value.status == 400
    assert excinfo.value.to_json() == (
        "Repository names are limited to 5 levels: "
        "one/two/three/four/five/six is not allowed"
    )
    assert registry.counter == 0


def test_five_level_name_allowed(registry, config):
    name = "fifth/fourth/repo/image/test"
    assert check_repo_depth(name) == name
    result = post_blob_upload(registry, config, name)
    assert result.repo_name == name


def test_post_to_invalid_name(registry, config):
    with pytest.raises(NameInvalid) as excinfo:
        post_blob_upload(registry, config, "f/failthis")
    assert excinfo.value.status == 400
    assert json.loads(excinfo.value.to_json())["errors"][0]["detail"] == {
        "Repository": "f/failthis"
    }


def test_start_failure_is_internal(config):
    with pytest.raises(InternalError):
        post_blob_upload(FakeRegistry(start_error=StorageDriverError()), config, "repo")


@pytest.mark.parametrize(
    "error, expected",
    [
        (InvalidNameError("bad"), NameInvalid),
        (InvalidContentRangeError(), BlobUploadInvalid),
        (StorageDriverError(), InternalError),
    ],
)
def test_store_errors_mapped(config, error, expected):
    registry = FakeRegistry(store_error=error)
    with pytest.raises(expected):
        patch_blob(registry, config, "repo", "upload-1", b"data")
    with pytest.raises(expected):
        put_blob(registry, config, "repo", "upload-1", sha(b"data"), b"data")


def test_content_range_error_reason(config):
    registry = FakeRegistry(store_error=InvalidContentRangeError())
    with pytest.raises(BlobUploadInvalid) as excinfo:
        patch_blob(registry, config, "repo", "upload-1", b"data")
    assert excinfo.value.detail == {"Reason": "Invalid Content Range"}


def test_put_with_wrong_digest(registry, config):
    info = post_blob_upload(registry, config, "repo")
    with pytest.raises(DigestInvalid):
        put_blob(registry, config, "repo", info.uuid, sha(b"other"), b"data")


def test_put_with_malformed_digest(registry, config):
    info = post_blob_upload(registry, config, "repo")
    with pytest.raises(DigestInvalid):
        put_blob(registry, config, "repo", info.uuid, "not-a-digest", b"data")


def test_complete_failure_is_internal(config):
    registry = FakeRegistry(complete_error=StorageDriverError())
    info = post_blob_upload(registry, config, "repo")
    with pytest.raises(InternalError):
        put_blob(registry, config, "repo", info.uuid, sha(b"data"), b"data")


def test_put_empty_blob_range(registry, config):
    info = post_blob_upload(registry, config, "repo")
    result = put_blob(registry, config, "repo", info.uuid, sha(b""), b"")
    assert result.range == (0, 0)


def test_get_non_existent_blob(registry):
    assert get_blob(registry, "test/test", "sha256:baadf00d") is None


def test_get_blob_malformed_digest(registry):
    assert get_blob(registry, "test/test", "garbage") is None


def test_delete_config_blob(registry, config):
    content = b"{}\n"
    post_blob_upload(registry, config, "puttest", f"digest={sha(content)}", content)
    assert delete_blob(registry, "puttest", sha(content)) == BlobDeleted()
    assert ("puttest", sha(content)) not in registry.blobs
    assert respond(BlobDeleted(), HttpRequest()).status == 202


def test_delete_unknown_blob(registry):
    with pytest.raises(BlobUnknown):
        delete_blob(registry, "puttest", sha(b"missing"))


def test_delete_malformed_digest(registry):
    with pytest.raises(DigestInvalid):
        delete_blob(registry, "puttest", "sha256:XYZ")