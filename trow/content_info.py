"""Content-Length and Content-Range information sent with an upload chunk."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping

from trow.errors import BlobUploadInvalid

_log = logging.getLogger(__name__)
_U64 = re.compile(r"\+?[0-9]+")
_U64_LIMIT = 1 << 64


@dataclass(frozen=True)
class ContentInfo:
    length: int
    range: tuple[int, int]


def _header(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    return next((value for key, value in headers.items() if key.lower() == wanted), None)


def _parse_u64(text: str) -> int | None:
    if not _U64.fullmatch(text):
        return None
    value = int(text)
    return value if value < _U64_LIMIT else None


def parse_content_info(headers: Mapping[str, str]) -> ContentInfo:
    """Read the chunk's length and range; raise BlobUploadInvalid if absent or malformed."""
    raw_length = _header(headers, "Content-Length")
    if raw_length is None:
        raise BlobUploadInvalid("Expected Content-Length header")
    length = _parse_u64(raw_length)
    if length is None:
        _log.warning("Received request with invalid Content-Length header")
        raise BlobUploadInvalid("Invalid Content-Length")

    raw_range = _header(headers, "Content-Range")
    if raw_range is not None:
        parts = raw_range.split("-")
        if len(parts) == 2:
            start, end = (_parse_u64(part) for part in parts)
            if start is not None and end is not None:
                return ContentInfo(length, (start, end))
    _log.warning("Received request with invalid Content-Range header")
    raise BlobUploadInvalid("Invalid Content-Range")