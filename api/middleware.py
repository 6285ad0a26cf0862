import structlog
from fastapi import Request

from core.logging import BusinessEvents


async def log_api_entry(request: Request, call_next):
    """Middleware to log API entries with request details"""
    # Fresh logger each time so test configurations are respected
    log = structlog.get_logger(__name__)

    log.info(
        BusinessEvents.API_ENTRY,
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None,
    )
    response = await call_next(request)
    log.info(
        BusinessEvents.API_RESPONSE,
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )
    return response
