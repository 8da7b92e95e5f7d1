"""
Errors raised by the decoder and the admission controller.

Each one is a FastAPI ``HTTPException`` carrying the status an HTTP
entrypoint should answer with, so endpoints can let them propagate.
"""

from fastapi import HTTPException, status

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Try again later."
CONCURRENCY_LIMIT_MESSAGE = "Too many concurrent requests. Try again later."


class OtlpGatewayError(HTTPException):
    """Base class for all gateway errors."""


class UnsupportedMediaType(OtlpGatewayError):
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=detail
        )


class InvalidOtlpPayload(OtlpGatewayError):
    """The body declared protobuf but could not be decoded."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RateLimitExceeded(OtlpGatewayError):
    def __init__(self, detail: str = RATE_LIMIT_MESSAGE):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class ConcurrencyExceeded(OtlpGatewayError):
    def __init__(self, detail: str = CONCURRENCY_LIMIT_MESSAGE):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)
