"""Maps domain errors to JSON responses: ``{"detail": message}``."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.domain.errors import CarpoolError, ValidationError


async def carpool_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, CarpoolError) else CarpoolError(str(exc))
    content: dict[str, str] = {"detail": error.message}
    if isinstance(error, ValidationError) and error.field:
        content["field"] = error.field
    return JSONResponse(status_code=error.status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CarpoolError, carpool_error_handler)
