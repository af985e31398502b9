"""FastAPI authentication dependency for the document analysis API."""

import hmac

from fastapi import HTTPException, Request


async def verify_api_key(request: Request) -> None:
    """Check the ``X-API-Key`` header against ``APP_API_KEY``.

    Args:
        request (Request): The incoming FastAPI request.

    Raises:
        HTTPException: 401 if the key is missing or wrong, 503 if the server
            has no key configured.
    """
    config = request.app.state.config
    try:
        expected_key = config.get_string_val("APP_API_KEY")
    except ValueError:
        request.app.state.logging.error("APP_API_KEY is not set; rejecting API request.")
        raise HTTPException(status_code=503, detail="API key is not configured on the server.")

    provided_key = request.headers.get("X-API-Key") or ""
    if not provided_key or not hmac.compare_digest(provided_key, expected_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")
