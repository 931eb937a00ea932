import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import Settings, configure_logging, get_settings
from db_models import ErrorResponse, FinalResponse, IdentifyRequest
from errors import ERROR_MESSAGES, ErrorKind, IdentityResolutionError
from identity_service import IdentityService

logger = logging.getLogger(__name__)


def error_response(kind: ErrorKind, status_code: int, detail: str = None) -> JSONResponse:
    body = ErrorResponse(error=kind.value, detail=detail or ERROR_MESSAGES[kind])
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(settings: Settings = None) -> FastAPI:
    settings = settings or get_settings()
    service = IdentityService(settings.database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        service.setup()
        yield

    app = FastAPI(
        title="Contact Identity Reconciliation API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed identify request: %s", exc.errors())
        return error_response(ErrorKind.MALFORMED_REQUEST, 400, "Request body is not a valid identity")

    @app.exception_handler(IdentityResolutionError)
    async def resolution_error(request: Request, exc: IdentityResolutionError):
        return error_response(exc.kind, exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unexpected failure while handling %s", request.url.path, exc_info=exc)
        return error_response(ErrorKind.INTERNAL_ERROR, 500)

    @app.get("/")
    async def root():
        return {"message": "Identity reconciliation API is up"}

    @app.post("/identify", response_model=FinalResponse)
    def identify(request: IdentifyRequest):
        view = service.identify(request.to_identity())
        return FinalResponse.from_view(view)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
