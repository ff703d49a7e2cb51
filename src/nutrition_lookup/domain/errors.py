"""Error taxonomy shared by provider adapters and the resolution service."""

INVALID_BARCODE = "INVALID_BARCODE"
INVALID_QUERY = "INVALID_QUERY"
PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
AUTH_FAILED = "AUTH_FAILED"
ACCESS_DENIED = "ACCESS_DENIED"
FEATURE_NOT_AVAILABLE = "FEATURE_NOT_AVAILABLE"
UPSTREAM_RATE_LIMITED = "UPSTREAM_RATE_LIMITED"
LOCAL_RATE_LIMITED = "LOCAL_RATE_LIMITED"
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
INVALID_RESPONSE = "INVALID_RESPONSE"
UPSTREAM_ERROR = "UPSTREAM_ERROR"


class ProductLookupError(Exception):
    """Base class for product lookup failures."""


class APIError(ProductLookupError):
    """Structured failure with an HTTP-like status and machine-readable code."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.retry_after = retry_after

    def __repr__(self) -> str:
        return f"APIError({self.message!r}, status={self.status}, code={self.code!r})"


class NetworkError(ProductLookupError):
    """The request never produced a structured response."""

    def __init__(self, message: str = "Network request failed") -> None:
        super().__init__(message)
        self.message = message


def invalid_barcode(barcode: str) -> APIError:
    """Build the validation error raised for malformed barcodes."""
    return APIError(
        f"Invalid barcode format: {barcode!r}. Expected an 8-14 digit barcode.",
        status=400,
        code=INVALID_BARCODE,
    )
