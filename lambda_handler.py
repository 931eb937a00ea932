"""
API Gateway proxy entry point.

Takes the raw request body from the proxy event and answers with the same
status codes and JSON bodies as the HTTP app.
"""
import logging
from functools import lru_cache

from pydantic import ValidationError

from config import configure_logging, get_settings
from db_models import ErrorResponse, FinalResponse, IdentifyRequest
from errors import ERROR_MESSAGES, ErrorKind, IdentityResolutionError
from identity_service import IdentityService

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@lru_cache
def get_service() -> IdentityService:
    settings = get_settings()
    configure_logging(settings.log_level)
    service = IdentityService(settings.database)
    service.setup()
    return service


def _respond(status_code: int, body) -> dict:
    return {"statusCode": status_code, "headers": dict(JSON_HEADERS), "body": body.model_dump_json()}


def _error(kind: ErrorKind, status_code: int, detail: str = None) -> dict:
    return _respond(status_code, ErrorResponse(error=kind.value, detail=detail or ERROR_MESSAGES[kind]))


def lambda_handler(event, context=None, service: IdentityService = None) -> dict:
    try:
        request = IdentifyRequest.model_validate_json(event.get("body") or "")
    except ValidationError as exc:
        logger.info("Rejected malformed identify request: %s", exc.errors())
        return _error(ErrorKind.MALFORMED_REQUEST, 400, "Request body is not a valid identity")

    try:
        view = (service or get_service()).identify(request.to_identity())
    except IdentityResolutionError as exc:
        return _error(exc.kind, exc.status_code, exc.message)
    except Exception:
        # every failure still answers with a proxy response
        logger.exception("Unexpected failure while resolving identity")
        return _error(ErrorKind.INTERNAL_ERROR, 500)

    return _respond(200, FinalResponse.from_view(view))
