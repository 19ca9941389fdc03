"""Kubernetes admission webhook that decides whether an image may run."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, Protocol, Sequence

from trow.types import (
    AdmissionResponse,
    AdmissionReview,
    AdmissionStatus,
    RegistryConfig,
)


class _ValidationBackend(Protocol):
    def validate_admission(
        self, request: Mapping[str, Any], host_names: Sequence[str]
    ) -> AdmissionResponse: ...


def validate_image(
    client: _ValidationBackend,
    config: RegistryConfig,
    review: AdmissionReview | Mapping[str, Any],
) -> AdmissionReview:
    """POST /validate-image: return the review with a response filled in.

    The review always comes back, disallowed images and internal failures
    included; the verdict is in its ``response``.
    """
    if not isinstance(review, AdmissionReview):
        review = AdmissionReview.from_dict(review)

    request = review.request
    if request is None:
        verdict = AdmissionResponse(
            uid="UNKNOWN",
            allowed=False,
            status=AdmissionStatus(
                status="Failure", message="No request found in review object"
            ),
        )
    else:
        try:
            verdict = client.validate_admission(request, config.host_names)
        except Exception as exc:
            verdict = AdmissionResponse(
                uid=str(request.get("uid", "")),
                allowed=False,
                status=AdmissionStatus(status="Failure", message=f"Internal Error {exc!r}"),
            )
    return replace(review, response=verdict)