"""
Exception handlers mapping domain errors onto HTTP responses.

Register these on a FastAPI app instance via `register_exception_handlers(app)`.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
import structlog

from installer_rewards.core.exceptions import (
    AlreadyParticipatingError, IneligibleError, NotFoundError,
    PromotionValidationError, RewardsError
)

logger = structlog.get_logger()


def _error_response(status_code: int, exc: RewardsError, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": exc.kind, **extra},
    )


async def validation_error_handler(request: Request, exc: PromotionValidationError):
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc, fields=exc.fields)


async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, exc, entity=exc.entity)


async def ineligible_handler(request: Request, exc: IneligibleError):
    return _error_response(status.HTTP_403_FORBIDDEN, exc, rule=exc.rule)


async def already_participating_handler(request: Request, exc: AlreadyParticipatingError):
    return _error_response(status.HTTP_409_CONFLICT, exc)


async def rewards_error_handler(request: Request, exc: RewardsError):
    logger.error("Unhandled rewards error", path=request.url.path, error=str(exc))
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


def register_exception_handlers(app):
    """Register all exception handlers on the given FastAPI app."""
    app.add_exception_handler(PromotionValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(IneligibleError, ineligible_handler)
    app.add_exception_handler(AlreadyParticipatingError, already_participating_handler)
    app.add_exception_handler(RewardsError, rewards_error_handler)
