"""Turning registry results into HTTP responses."""

from __future__ import annotations

import json
import logging
import socket
from dataclasses import dataclass, field
from functools import singledispatch
from typing import Any, Mapping

from trow.errors import RegistryError
from trow.types import (
    AcceptedUpload,
    BlobDeleted,
    BlobReader,
    HealthResponse,
    ManifestDeleted,
    ManifestHistory,
    ManifestReader,
    MetricsResponse,
    ReadinessResponse,
    RegistryConfig,
    RepoCatalog,
    TagList,
    UploadInfo,
    VerifiedManifest,
)

_log = logging.getLogger(__name__)

_JSON = "application/json"
_HTML = "text/html; charset=utf-8"
_PLAIN = "text/plain; charset=utf-8"
_OCTET = "application/octet-stream"


def _lookup(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    return next((value for key, value in headers.items() if key.lower() == wanted), None)


@dataclass
class HttpRequest:
    """The parts of an incoming request that responses depend on."""

    headers: Mapping[str, str] = field(default_factory=dict)
    config: RegistryConfig = field(default_factory=RegistryConfig)


@dataclass
class HttpResponse:
    """A status code, ordered headers and a body."""

    status: int = 200
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        """Value of the first header called ``name``, ignoring case."""
        wanted = name.lower()
        return next((value for key, value in self.headers if key.lower() == wanted), None)


@dataclass(frozen=True)
class Empty:
    """A plain 200 response without a body."""


@dataclass(frozen=True)
class Html:
    """An HTML page."""

    content: str


@dataclass(frozen=True)
class Authenticate:
    """A 401 challenge pointing clients at the login endpoint."""


def _sized(status: int, headers: list[tuple[str, str]], body: bytes) -> HttpResponse:
    return HttpResponse(status, [*headers, ("Content-Length", str(len(body)))], body)


def _json_body(data: Any) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode()


def domain_name(request: HttpRequest) -> str:
    """The Host header of the request, or this machine's name."""
    host = _lookup(request.headers, "Host")
    return host if host is not None else socket.gethostname()


def base_url(request: HttpRequest) -> str:
    """The URL clients use to reach the registry, e.g. ``http://registry:8000``."""
    host = domain_name(request)
    proto = _lookup(request.headers, "X-Forwarded-Proto")
    if proto is None:
        scheme = "https" if request.config.tls else "http"
        return f"{scheme}://{host}"
    if proto == "http":
        _log.warning("Security issue! Upstream proxy is using HTTP")
    return f"{proto}://{host}"


@singledispatch
def respond(obj: Any, request: HttpRequest) -> HttpResponse:
    """Build the HTTP response for a registry result or error."""
    raise TypeError(f"no response defined for {type(obj).__name__}")


@respond.register
def _(obj: AcceptedUpload, request: HttpRequest) -> HttpResponse:
    location = f"{base_url(request)}/v2/{obj.repo_name}/blobs/{obj.digest}"
    _log.debug("accepted upload response")
    left, right = obj.range
    return HttpResponse(
        201,
        [
            ("Location", location),
            ("Docker-Content-Digest", str(obj.digest)),
            ("Range", f"{left}-{right}"),
            ("Content-Length", "0"),
        ],
    )


@respond.register
def _(obj: UploadInfo, request: HttpRequest) -> HttpResponse:
    location = f"{base_url(request)}/v2/{obj.repo_name}/blobs/uploads/{obj.uuid}"
    left, right = obj.range
    _log.debug("Range: %d-%d, Length: %d", left, right, right - left)
    return HttpResponse(
        202,
        [
            ("Docker-Upload-UUID", obj.uuid),
            ("Location", location),
            ("Range", f"{left}-{right}"),
            ("X-Content-Length", str(right - left)),
        ],
    )


@respond.register
def _(obj: VerifiedManifest, request: HttpRequest) -> HttpResponse:
    location = f"{base_url(request)}/v2/{obj.repo_name}/manifests/{obj.tag}"
    return HttpResponse(
        201,
        [("Location", location), ("Docker-Content-Digest", str(obj.digest))],
    )


@respond.register
def _(obj: Authenticate, request: HttpRequest) -> HttpResponse:
    realm = base_url(request)
    challenge = (
        f'Bearer realm="{realm}/login",service="trow_registry",scope="push/pull"'
    )
    return HttpResponse(
        401, [("www-authenticate", challenge), ("Content-Type", _JSON)]
    )


@respond.register
def _(obj: BlobDeleted, request: HttpRequest) -> HttpResponse:
    return HttpResponse(202)


@respond.register
def _(obj: ManifestDeleted, request: HttpRequest) -> HttpResponse:
    return HttpResponse(202)


@respond.register
def _(obj: Empty, request: HttpRequest) -> HttpResponse:
    return HttpResponse(200)


@respond.register
def _(obj: Html, request: HttpRequest) -> HttpResponse:
    return _sized(200, [("Content-Type", _HTML)], obj.content.encode())


@respond.register
def _(obj: BlobReader, request: HttpRequest) -> HttpResponse:
    body = obj.reader.read()
    return _sized(
        200,
        [("Content-Type", _OCTET), ("Docker-Content-Digest", str(obj.digest))],
        body,
    )


@respond.register
def _(obj: ManifestReader, request: HttpRequest) -> HttpResponse:
    body = obj.reader.read()
    return _sized(
        200,
        [("Content-Type", obj.content_type), ("Docker-Content-Digest", str(obj.digest))],
        body,
    )


@respond.register
def _(obj: HealthResponse, request: HttpRequest) -> HttpResponse:
    status = 200 if obj.is_healthy else 503
    return _sized(status, [("Content-Type", _JSON)], _json_body(obj.to_dict()))


@respond.register
def _(obj: ReadinessResponse, request: HttpRequest) -> HttpResponse:
    status = 200 if obj.is_ready else 503
    return _sized(status, [("Content-Type", _JSON)], _json_body(obj.to_dict()))


@respond.register
def _(obj: MetricsResponse, request: HttpRequest) -> HttpResponse:
    return _sized(200, [("Content-Type", _PLAIN)], obj.metrics.encode())


@respond.register
def _(obj: ManifestHistory, request: HttpRequest) -> HttpResponse:
    return _sized(200, [("Content-Type", _JSON)], _json_body(obj.to_dict()))


@respond.register
def _(obj: RepoCatalog, request: HttpRequest) -> HttpResponse:
    return _sized(200, [("Content-Type", _JSON)], _json_body(obj.to_dict()))


@respond.register
def _(obj: TagList, request: HttpRequest) -> HttpResponse:
    return _sized(200, [("Content-Type", _JSON)], _json_body(obj.to_dict()))


@respond.register
def _(obj: RegistryError, request: HttpRequest) -> HttpResponse:
    return _sized(obj.status, [("Content-Type", obj.content_type)], obj.to_json().encode())