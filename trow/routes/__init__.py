"""Route handlers for blobs, manifests, catalogue, status and image validation."""