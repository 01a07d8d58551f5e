import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, IntegrityError
from eventflow.core.ctx import get_request_id
from eventflow.domain.exceptions import AppError, NotFound, Conflict, Unprocessable, Unauthorized, InvalidInput, Forbidden

logger = logging.getLogger("eventflow.api")

MEDIA_TYPE = "application/problem+json"

_PROBLEMS: dict[type[AppError], tuple[int, str]] = {
    NotFound: (status.HTTP_404_NOT_FOUND, "Not Found"),
    Unauthorized: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    Forbidden: (status.HTTP_403_FORBIDDEN, "Forbidden"),
    Conflict: (status.HTTP_409_CONFLICT, "Conflict"),
    InvalidInput: (status.HTTP_400_BAD_REQUEST, "Bad Request"),
    Unprocessable: (status.HTTP_422_UNPROCESSABLE_ENTITY, "Unprocessable Entity"),
}


def problem_for(exc: AppError) -> tuple[int, str]:
    for cls in type(exc).mro():
        if cls in _PROBLEMS:
            return _PROBLEMS[cls]
    return status.HTTP_400_BAD_REQUEST, "Application Error"


def _www_authenticate_header(error_description: str | None = None) -> str:
    attributes = ['realm="api"', 'error="invalid_token"']
    if error_description:
        attributes.append(f'error_description="{error_description}"')
    return "Bearer " + ", ".join(attributes)


def _problem(
    request: Request,
    *,
    http_status: int,
    title: str,
    detail: str | None = None,
    extra: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "status": http_status,
        "title": title,
        "detail": detail,
        "instance": str(request.url),
    }
    req_id = get_request_id()
    if req_id:
        body["trace_id"] = req_id
    if extra:
        body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=http_status, content=body, media_type=MEDIA_TYPE, headers=headers or {})


def register_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        status_code, title = problem_for(exc)
        detail = str(exc) or None
        extra = {"context": exc.ctx} if exc.ctx else None

        headers = None
        if isinstance(exc, Unauthorized):
            headers = {"WWW-Authenticate": _www_authenticate_header(detail)}

        return _problem(request, http_status=status_code, title=title, detail=detail, extra=extra, headers=headers)

    @app.exception_handler(IntegrityError)
    async def _integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Unhandled integrity error route=%s", request.url.path)
        return _problem(request, http_status=status.HTTP_409_CONFLICT, title="Conflict", detail="Integrity error")

    @app.exception_handler(OperationalError)
    async def _operational_error_handler(request: Request, exc: OperationalError):
        logger.exception("Database unavailable route=%s", request.url.path)
        return _problem(
            request,
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
            title="Service Unavailable",
            detail="Please try again",
            headers={"Retry-After": "1"}
        )
