# middleware/error_handler.py
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pymongo.errors import ConnectionFailure
import logging
import traceback
from typing import Callable

from learnhub.config import settings
from learnhub.errors import LearnHubError, InternalFailure

logger = logging.getLogger(__name__)

class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware for the FastAPI application.

    Domain errors normally become HTTPExceptions in the routers; this is the
    safety net for the ones that escape and for everything unexpected.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        try:
            response = await call_next(request)
            return response

        except HTTPException as e:
            # Let FastAPI handle HTTP exceptions normally
            raise e

        except InternalFailure as e:
            logger.error(f"Internal failure on {request.url}: {e.message}")
            logger.error(f"Traceback: {traceback.format_exc()}")
            return _server_error(request)

        except LearnHubError as e:
            logger.warning(f"{type(e).__name__} on {request.url}: {e.message}")
            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": type(e).__name__,
                    "message": e.message,
                    "path": str(request.url.path)
                }
            )

        except ValueError as e:
            logger.warning(f"Validation error on {request.url}: {str(e)}")
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Validation Error",
                    "message": str(e),
                    "path": str(request.url.path)
                }
            )

        except (ConnectionError, ConnectionFailure) as e:
            # Handle database/Redis connection errors
            logger.error(f"Connection error on {request.url}: {str(e)}")
            return JSONResponse(
                status_code=503,
                content={
                    "error": "Service Unavailable",
                    "message": "Database connection error",
                    "path": str(request.url.path)
                }
            )

        except Exception as e:
            logger.error(f"Unexpected error on {request.url}: {str(e)}")
            logger.error(f"Traceback: {traceback.format_exc()}")
            return _server_error(request, detail=str(e))


def _server_error(request: Request, detail: str = None) -> JSONResponse:
    content = {
        "error": "Internal Server Error",
        "message": "An unexpected error occurred",
        "path": str(request.url.path)
    }
    if detail and settings.DEBUG and not settings.is_production:
        content["detail"] = detail
    return JSONResponse(status_code=500, content=content)
