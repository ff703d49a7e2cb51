"""Translation of httpx failures into the lookup error taxonomy."""

import httpx

from nutrition_lookup.domain.errors import (
    ACCESS_DENIED,
    AUTH_FAILED,
    INVALID_RESPONSE,
    UPSTREAM_ERROR,
    UPSTREAM_RATE_LIMITED,
    APIError,
    NetworkError,
)


def network_error(provider: str, exc: httpx.HTTPError) -> NetworkError:
    """Wrap a transport failure (timeout, DNS, connection reset)."""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(f"{provider} request timed out")
    return NetworkError(f"{provider} request failed: {exc}")


def error_for_response(provider: str, response: httpx.Response) -> Exception:
    """Map a non-2xx response to APIError, or NetworkError when it has no body."""
    status = response.status_code
    if status in {401, 403}:
        code = AUTH_FAILED if status == 401 else ACCESS_DENIED
        return APIError(
            f"{provider} rejected the request: {status} {_body_text(response)}",
            status=status,
            code=code,
        )
    if status == 429:
        return APIError(
            f"{provider} rate limit reached",
            status=429,
            code=UPSTREAM_RATE_LIMITED,
            retry_after=_retry_after(response),
        )
    if _structured_error(response):
        return APIError(
            f"{provider} API error: {status} {_body_text(response)}",
            status=status,
            code=UPSTREAM_ERROR,
        )
    return NetworkError(f"{provider} returned {status} without an error body")


def parse_json(provider: str, response: httpx.Response) -> dict[str, object]:
    """Decode a JSON object body or raise INVALID_RESPONSE."""
    try:
        data = response.json()
    except ValueError as exc:
        raise APIError(
            f"{provider} returned malformed JSON",
            status=502,
            code=INVALID_RESPONSE,
        ) from exc
    if not isinstance(data, dict):
        raise APIError(
            f"{provider} returned an unexpected payload",
            status=502,
            code=INVALID_RESPONSE,
        )
    return data


def _structured_error(response: httpx.Response) -> bool:
    try:
        data = response.json()
    except ValueError:
        return False
    return isinstance(data, dict) and bool(data.get("error") or data.get("message"))


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _body_text(response: httpx.Response) -> str:
    return response.text[:200]
