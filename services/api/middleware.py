"""FastAPI middleware and dependencies for request context."""

import uuid
import logging
from typing import Optional
from fastapi import Header, HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from shared.logging_config import set_correlation_id, set_user_id


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Handles correlation ID extraction/generation for request tracking"""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get('X-Correlation-ID', str(uuid.uuid4()))
        set_correlation_id(correlation_id)

        logging.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else "unknown"
            }
        )

        response = await call_next(request)
        response.headers['X-Correlation-ID'] = correlation_id

        logging.info(
            "Outgoing response",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code
            }
        )

        return response


def get_owner_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Acting user, as established by the authentication layer in front of the API"""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-ID header")
    set_user_id(x_user_id)
    return x_user_id
