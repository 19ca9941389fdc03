"""HTTP-facing layer of a container image registry: types, errors, responses and users."""

__version__ = "0.1.0"