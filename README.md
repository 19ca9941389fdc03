# trow

The HTTP-facing layer of a container image registry that follows the
Docker / OCI distribution API. It turns registry operations into HTTP
responses with the headers clients expect, maps storage failures to the
registry's JSON error format, keeps user accounts, and answers Kubernetes
admission webhooks.

## Modules

- `trow.types`: the value types that pass between the route handlers and a
  storage back end: `Digest`, `DigestAlgorithm` and `parse_digest`,
  `RegistryConfig`, `UploadInfo`, `AcceptedUpload`, `VerifiedManifest`,
  `BlobDeleted`, `ManifestDeleted`, `BlobReader`, `ManifestReader`,
  `ManifestHistory`, `MetricsResponse`, `RepoCatalog`, `TagList`,
  `AdmissionReview`, `AdmissionResponse`, `AdmissionStatus`,
  `HealthResponse` and `ReadinessResponse`. The JSON-shaped ones offer
  `to_dict()`; `RepoCatalog`, `TagList` and `AdmissionReview` also offer
  `from_dict()`. `RepoCatalog.insert` keeps the list sorted,
  `TagList.insert` keeps insertion order.
- `trow.errors`: `RegistryError` and its subclasses (`NameInvalid`,
  `BlobUploadInvalid`, `ManifestUnknown`, `ManifestInvalid`,
  `Unauthorized`, `BlobUnknown`, `BlobUploadUnknown`, `Unsupported`,
  `InternalError`, `DigestInvalid`, `RepositoryDepthError`). Each carries
  its HTTP `status` and renders its body with `to_json()`. The errors a
  storage back end raises are here too: `StorageDriverError` and its
  subclasses `InvalidNameError`, `InvalidContentRangeError`,
  `InvalidDigestError`, `InvalidManifestError` and
  `UnsupportedOperationError`.
- `trow.content_info`: `parse_content_info(headers)` reads the
  `Content-Length` and `Content-Range` headers of a chunk upload into a
  `ContentInfo`, raising `BlobUploadInvalid` when they are missing or
  malformed.
- `trow.response`: `respond(obj, request)` turns any result type or
  `RegistryError` into an `HttpResponse` (status, ordered headers, body).
  `HttpRequest` carries the incoming headers and the `RegistryConfig`;
  `base_url` and `domain_name` build the `Location` URLs from the `Host`
  and `X-Forwarded-Proto` headers. `Empty`, `Html` and `Authenticate`
  (a 401 bearer challenge pointing at `/login`) are extra response types.
- `trow.users`: `generate_salt`, `hash_password` and `verify_password`
  (scrypt, self-describing encoded hash), and `UserStore`, a SQLite-backed
  account table with `create`, `authorize` and `delete`. The database file
  defaults to `$DB_FILE`, or `sqlite.db`.
- `trow.routes.blob`: `get_blob`, `put_blob`, `patch_blob`,
  `post_blob_upload`, `delete_blob` and `check_repo_depth` (repository
  names may have at most five levels).
- `trow.routes.manifest`: `get_manifest`, `put_image_manifest`,
  `delete_image_manifest`.
- `trow.routes.catalog`: `get_catalog`, `list_tags`,
  `get_manifest_history`.
- `trow.routes.status`: `healthz`, `readiness`, `metrics`.
- `trow.routes.validation`: `validate_image`, the admission webhook; it
  always returns the review with its `response` filled in.

Each route handler takes a `client` object, the storage back end, and
calls methods on it such as `get_blob`, `start_blob_upload`,
`store_blob_chunk`, `complete_and_verify_blob_upload`, `store_manifest`,
`get_catalog`, `get_tags`, `get_history`, `is_healthy`, `is_ready`,
`get_metrics` and `validate_admission`. Back-end failures are expected as
`StorageDriverError` subclasses and come out as `RegistryError`s.

## Examples

```python
from trow.types import RepoCatalog, TagList, parse_digest

catalog = RepoCatalog()
catalog.insert("onename")
catalog.insert("image/test")
print(catalog.to_dict())        # {'repositories': ['image/test', 'onename']}

tags = TagList("onename")
tags.insert("latest")
print(tags.to_dict())           # {'name': 'onename', 'tags': ['latest']}

digest = parse_digest(
    "sha256:05c6e08f1d9fdafa03147fcb8f82f124c76d2f70e3d989dc8aadb5e7d7450bec"
)
```

```python
from trow.errors import ManifestUnknown
from trow.response import HttpRequest, respond

err = ManifestUnknown("latest")
print(err.to_json())
# {"errors":[{"code":"MANIFEST_UNKNOWN","message":"Manifest unknown","detail":{"Tag":"latest"}}]}

resp = respond(err, HttpRequest(headers={"Host": "registry.example.com"}))
print(resp.status)              # 404
```

```python
from trow.content_info import parse_content_info

info = parse_content_info({"Content-Length": "100", "Content-Range": "0-99"})
```

```python
from trow.users import UserStore

store = UserStore("users.db")
password = "password"
store.create("alice", password)
user = store.authorize("alice", password)   # raises InvalidCredentials on mismatch
store.delete("alice")
```

## What the package does not do

- It has no HTTP server and no command-line program: nothing listens on a
  port, parses URLs or dispatches requests to the route handlers. That
  wiring is left to the application that uses the package.
- It has no storage back end. Blobs, manifests, tags, history, metrics and
  admission decisions all come from the `client` object passed to each
  handler.
- It does not issue or check login tokens; `Authenticate` only produces
  the challenge response.

## Tests

The test suite uses pytest and is installed with the `test` extra:

```
pip install -e .[test]
pytest
```