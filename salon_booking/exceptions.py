"""
Domain errors and their HTTP mapping
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SalonBookingError(Exception):
    """Base class for errors that are reported back to the caller"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SalonBookingError):
    status_code = 400


class ConflictError(SalonBookingError):
    """Overlapping booking; the message names the colliding customer and time"""

    status_code = 409


class NotFoundError(SalonBookingError):
    status_code = 404


class AuthError(SalonBookingError):
    status_code = 401


class SignatureError(AuthError):
    status_code = 403


class ExternalServiceError(SalonBookingError):
    """Messaging platform call failed"""

    status_code = 502


class DecryptionError(SalonBookingError):
    """Stored credential can no longer be decrypted with the current key"""

    status_code = 409

    def __init__(self, message: str = "Stored LINE credentials can no longer be read. Please reconfigure your LINE channel."):
        super().__init__(message)


async def salon_booking_error_handler(request: Request, exc: SalonBookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
