"""Registry errors as reported to clients, and storage back-end errors."""

from __future__ import annotations

import json
from typing import Any, ClassVar


class RegistryError(Exception):
    """An error in the distribution API's JSON error format."""

    code: ClassVar[str] = "UNKNOWN"
    message: ClassVar[str] = "Unknown error"
    status: ClassVar[int] = 500
    description: ClassVar[str] = ""
    content_type: ClassVar[str] = "application/json"

    def __init__(self) -> None:
        super().__init__(self.message)

    @property
    def detail(self) -> dict[str, Any] | None:
        return None

    def to_json(self) -> str:
        """Render the response body."""
        body = {"code": self.code, "message": self.message, "detail": self.detail}
        return '{"errors":[' + json.dumps(body, separators=(",", ":")) + "]}"

    def __str__(self) -> str:
        return self.to_json()


class _DetailedError(RegistryError):
    detail_key: ClassVar[str] = ""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__()

    @property
    def detail(self) -> dict[str, Any]:
        return {self.detail_key: self.value}


class NameInvalid(_DetailedError):
    code = "NAME_INVALID"
    message = "Invalid repository name"
    status = 400
    detail_key = "Repository"
    description = (
        "Invalid repository name encountered either during manifest validation "
        "or any API operation."
    )


class BlobUploadInvalid(_DetailedError):
    code = "BLOB_UPLOAD_INVALID"
    message = "Invalid request to blob upload"
    status = 416
    detail_key = "Reason"
    description = "The blob upload encountered an error and can no longer proceed."


class ManifestUnknown(_DetailedError):
    code = "MANIFEST_UNKNOWN"
    message = "Manifest unknown"
    status = 404
    detail_key = "Tag"
    description = (
        "This error is returned when the manifest, identified by name and tag "
        "is unknown to the repository."
    )


class ManifestInvalid(_DetailedError):
    code = "MANIFEST_INVALID"
    message = "Manifest invalid"
    status = 400
    detail_key = "detail"
    description = (
        "During upload, manifests undergo several checks ensuring validity. If "
        "those checks fail, this error may be returned, unless a more specific "
        "error is included. The detail will contain information the failed validation."
    )


class Unauthorized(RegistryError):
    code = "UNAUTHORIZED"
    message = "Authorization required"
    status = 401
    description = "The operation requires authorization."


class BlobUnknown(RegistryError):
    code = "BLOB_UNKNOWN"
    message = "Blob Unknown"
    status = 400
    description = "Reference made to an unknown blob (e.g. invalid UUID)"


class BlobUploadUnknown(RegistryError):
    code = "BLOB_UPLOAD_UNKNOWN"
    message = "Blob Upload Unknown"
    status = 404
    description = (
        "If a blob upload has been cancelled or was never started, this error "
        "code may be returned."
    )

    def to_json(self) -> str:
        return self.message


class Unsupported(RegistryError):
    code = "UNSUPPORTED"
    message = "Unsupported"
    status = 405
    description = (
        "The operation was unsupported due to a missing implementation or "
        "invalid set of parameters."
    )


class InternalError(RegistryError):
    code = "INTERNAL_ERROR"
    message = "Internal Server Error"
    status = 500
    description = "An internal error occured, please consult the logs for more details."


class DigestInvalid(RegistryError):
    code = "DIGEST_INVALID"
    message = "Provided digest did not match uploaded content"
    status = 400
    description = (
        "When a blob is uploaded, the registry will check that the content "
        "matches the digest provided by the client. The error may include a "
        'detail structure with the key "digest", including the invalid digest '
        "string. This error may also be returned when a manifest includes an "
        "invalid layer digest."
    )


class RepositoryDepthError(RegistryError):
    """A repository name deeper than five levels; answered with plain text."""

    code = "NAME_INVALID"
    status = 400
    content_type = "text/plain"
    description = "Repository names are limited to 5 levels."

    def __init__(self, repo_name: str) -> None:
        self.repo_name = repo_name
        super().__init__()

    @property
    def message(self) -> str:  # type: ignore[override]
        return (
            f"Repository names are limited to 5 levels: {self.repo_name} "
            "is not allowed"
        )

    def to_json(self) -> str:
        return self.message


class StorageDriverError(Exception):
    """Raised by a storage back end."""


class InvalidNameError(StorageDriverError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid repository name: {name}")


class InvalidContentRangeError(StorageDriverError):
    pass


class InvalidDigestError(StorageDriverError):
    pass


class InvalidManifestError(StorageDriverError):
    pass


class UnsupportedOperationError(StorageDriverError):
    pass