"""Value types shared by the registry's routes and responses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Mapping

_HEX = re.compile(r"[0-9a-f]+")


class DigestAlgorithm(str, Enum):
    """Hash algorithms a content digest may use."""

    SHA256 = "sha256"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Digest:
    """A content digest such as ``sha256:<hex>``."""

    algo: DigestAlgorithm
    hash: str

    def __str__(self) -> str:
        return f"{self.algo.value}:{self.hash}"


def parse_digest(text: str) -> Digest:
    """Parse ``<algorithm>:<hex>``; raise ValueError if it is malformed."""
    algo_name, sep, hex_part = text.partition(":")
    if not sep:
        raise ValueError(f"digest {text!r} has no algorithm prefix")
    try:
        algo = DigestAlgorithm(algo_name)
    except ValueError:
        raise ValueError(f"unsupported digest algorithm {algo_name!r}") from None
    if not _HEX.fullmatch(hex_part):
        raise ValueError(f"digest {text!r} does not hold a hex hash")
    return Digest(algo, hex_part)


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None


@dataclass
class RegistryConfig:
    """Settings the HTTP front end needs while serving requests."""

    data_dir: str = "./data"
    host: str = "0.0.0.0"
    port: int = 8443
    tls: bool = False
    proxy_hub: bool = False
    hub_user: str | None = None
    hub_pass: str | None = None
    host_names: list[str] = field(default_factory=list)
    allow_prefixes: list[str] = field(default_factory=list)
    allow_images: list[str] = field(default_factory=list)
    deny_prefixes: list[str] = field(default_factory=list)
    deny_images: list[str] = field(default_factory=list)
    dry_run: bool = False
    max_manifest_size: int = 4
    max_blob_size: int = 8192
    token_secret: str = ""
    user: str | None = None
    cors: bool = False
    log_level: str = "error"


@dataclass(frozen=True)
class UploadInfo:
    """State of an upload that is still in progress."""

    uuid: str
    repo_name: str
    range: tuple[int, int]


@dataclass(frozen=True)
class AcceptedUpload:
    """A blob upload that completed and was verified."""

    digest: Digest
    repo_name: str
    uuid: str
    range: tuple[int, int]


@dataclass(frozen=True)
class VerifiedManifest:
    """A manifest that was stored under a tag."""

    repo_name: str
    digest: Digest
    tag: str


@dataclass(frozen=True)
class BlobDeleted:
    """Marker result of a blob deletion."""


@dataclass(frozen=True)
class ManifestDeleted:
    """Marker result of a manifest deletion."""


@dataclass
class BlobReader:
    """A stored blob ready to be streamed to a client."""

    digest: Digest
    reader: BinaryIO


@dataclass
class ManifestReader:
    """A stored manifest ready to be streamed to a client."""

    content_type: str
    digest: Digest
    reader: BinaryIO


@dataclass
class ManifestHistory:
    """The digests a tag has pointed to, each entry holding ``digest`` and ``date``."""

    image: str
    history: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"image": self.image, "history": [dict(entry) for entry in self.history]}


@dataclass
class MetricsResponse:
    """Metrics in the text exposition format."""

    metrics: str


@dataclass
class RepoCatalog:
    """The list of repositories held by the registry."""

    repositories: list[str] = field(default_factory=list)

    def insert(self, name: str) -> None:
        """Add a repository name, keeping the list sorted."""
        self.repositories.append(name)
        self.repositories.sort()

    def to_dict(self) -> dict[str, Any]:
        return {"repositories": list(self.repositories)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RepoCatalog:
        return cls(list(_require(data, "repositories")))


@dataclass
class TagList:
    """The tags of one repository, in insertion order."""

    name: str
    tags: list[str] = field(default_factory=list)

    def insert(self, tag: str) -> None:
        self.tags.append(tag)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "tags": list(self.tags)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TagList:
        return cls(_require(data, "name"), list(_require(data, "tags")))


@dataclass
class AdmissionStatus:
    """Status block of an admission response."""

    status: str
    message: str | None = None
    code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "message": self.message, "code": self.code}


def _status_from_dict(data: Mapping[str, Any] | None) -> AdmissionStatus | None:
    if data is None:
        return None
    return AdmissionStatus(
        status=_require(data, "status"),
        message=data.get("message"),
        code=data.get("code"),
    )


@dataclass
class AdmissionResponse:
    """Verdict on an admission request."""

    uid: str
    allowed: bool
    status: AdmissionStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "allowed": self.allowed,
            "status": self.status.to_dict() if self.status is not None else None,
        }


def _response_from_dict(data: Mapping[str, Any] | None) -> AdmissionResponse | None:
    if data is None:
        return None
    return AdmissionResponse(
        uid=_require(data, "uid"),
        allowed=bool(_require(data, "allowed")),
        status=_status_from_dict(data.get("status")),
    )


@dataclass
class AdmissionReview:
    """A Kubernetes AdmissionReview object; the request is kept as raw JSON."""

    api_version: str
    kind: str
    request: dict[str, Any] | None = None
    response: AdmissionResponse | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "request": self.request,
            "response": self.response.to_dict() if self.response is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AdmissionReview:
        request = data.get("request")
        return cls(
            api_version=_require(data, "apiVersion"),
            kind=_require(data, "kind"),
            request=dict(request) if request is not None else None,
            response=_response_from_dict(data.get("response")),
        )


@dataclass
class HealthResponse:
    message: str
    is_healthy: bool

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "is_healthy": self.is_healthy}


@dataclass
class ReadinessResponse:
    message: str
    is_ready: bool

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "is_ready": self.is_ready}