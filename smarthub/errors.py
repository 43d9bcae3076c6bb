from __future__ import annotations


class SmartHubError(Exception):
    status_code = 500


class StorageError(SmartHubError):
    """A persistent store could not be opened or a write/read failed."""


class NetworkError(SmartHubError):
    """The remote image service (or another HTTP API) was unreachable or answered badly."""

    status_code = 502


class InvalidInputError(SmartHubError):
    status_code = 400


class PayloadTooLargeError(InvalidInputError):
    status_code = 413


class NotFoundError(SmartHubError):
    status_code = 404


class AccessDeniedError(SmartHubError):
    status_code = 403
