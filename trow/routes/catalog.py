"""Repository catalog, tag list and manifest history endpoints."""

from __future__ import annotations

from typing import Protocol

from trow.errors import InternalError
from trow.types import ManifestHistory, RepoCatalog, TagList

U32_MAX = 2**32 - 1


class _CatalogBackend(Protocol):
    def get_catalog(self, last: str, limit: int) -> list[str]: ...

    def get_tags(self, repo_name: str, last: str, limit: int) -> list[str]: ...

    def get_history(
        self, repo_name: str, reference: str, last: str, limit: int
    ) -> ManifestHistory: ...


def _limit(n: int | None) -> int:
    return U32_MAX if n is None else n


def get_catalog(
    client: _CatalogBackend, n: int | None = None, last: str | None = None
) -> RepoCatalog:
    """GET /v2/_catalog: up to ``n`` repositories after ``last``."""
    try:
        repos = client.get_catalog(last if last is not None else "", _limit(n))
    except Exception as exc:
        raise InternalError() from exc
    return RepoCatalog(list(repos))


def list_tags(
    client: _CatalogBackend,
    repo_name: str,
    last: str | None = None,
    n: int | None = None,
) -> TagList:
    """GET /v2/<name>/tags/list: up to ``n`` tags after ``last``."""
    try:
        tags = client.get_tags(repo_name, last if last is not None else "", _limit(n))
    except Exception as exc:
        raise InternalError() from exc
    return TagList(repo_name, list(tags))


def get_manifest_history(
    client: _CatalogBackend,
    repo_name: str,
    reference: str,
    last: str | None = None,
    n: int | None = None,
) -> ManifestHistory:
    """GET /<name>/manifest_history/<reference>: digests the tag has pointed to."""
    try:
        return client.get_history(
            repo_name, reference, last if last is not None else "", _limit(n)
        )
    except Exception as exc:
        raise InternalError() from exc