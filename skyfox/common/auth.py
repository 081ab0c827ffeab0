"""Shared-secret header check used by both services."""

from fastapi import Header, HTTPException, Request
from fastapi.responses import JSONResponse

from skyfox.common.config import settings
from skyfox.common.logging import logger


class ApiKeyRejected(HTTPException):
    """403 raised by `require_api_key`; rendered as `{"status", "message"}`."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=403, detail=message)


async def api_key_rejected_handler(request: Request, exc: ApiKeyRejected) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "FORBIDDEN", "message": exc.detail},
    )


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    """Reject requests without the configured API key.

    With `API_KEY` unset the check is disabled.
    """

    if not settings.api_key:
        return
    if not x_api_key:
        logger.warning("missing API key in request")
        raise ApiKeyRejected("API key is required")
    if x_api_key != settings.api_key:
        logger.warning("invalid API key provided")
        raise ApiKeyRejected("Invalid API key")
