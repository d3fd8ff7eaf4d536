import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse

# Set up our logger
logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for every recoverable error raised by the ledger services."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateEmail(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class InvalidCredentials(LedgerError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AlreadyDecided(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class InvalidAmount(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN


async def ledger_error_handler(request: Request, exc: LedgerError):
    """Turns a domain error into a structured JSON body for the UI layer."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catches ALL completely unhandled Python exceptions (500s) globally.
    Logs the full traceback on the server, but returns a clean JSON to the client.
    """
    logger.error(f"CRITICAL UNHANDLED ERROR processing {request.method} {request.url}: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected system error occurred."},
    )
