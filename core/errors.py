"""
core/errors.py — Tagged error types for the audio API.

Every error the API knows how to classify carries the HTTP status it maps
to and a message that is safe to show to the client. The HTTP layer renders
``AudioApiError`` subclasses directly; anything else is treated as an
internal error (logged, never leaked).

Taxonomy:
    InvalidCoordinatesError  400  out-of-range latitude / longitude / radius
    BadRequestError          400  other client input problems
    NotFoundError            404  absent record or empty search result
    StoreError               any  status + message forwarded from the record store
    DecodeError              500  audio could not be decoded / analysed
"""

from __future__ import annotations


class AudioApiError(Exception):
    """Base class for errors with a known HTTP status and client-safe message."""

    status: int = 500

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class BadRequestError(AudioApiError):
    status = 400


class InvalidCoordinatesError(BadRequestError):
    """Latitude, longitude or radius outside the accepted range."""


class NotFoundError(AudioApiError):
    status = 404


class StoreError(AudioApiError):
    """An error classified by the external record store.

    ``status`` and ``message`` come from the store response unchanged so
    the route can forward them verbatim.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message, status=status)


class DecodeError(AudioApiError):
    """Uploaded audio could not be decoded into PCM samples.

    ``message`` is always the generic client-facing text; the decoder's own
    error is kept as ``detail`` for logging.
    """

    status = 500

    def __init__(self, detail: str = "") -> None:
        super().__init__("Error extracting audio features")
        self.detail = detail
