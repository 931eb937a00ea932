from enum import Enum


class ErrorKind(str, Enum):
    MALFORMED_REQUEST = "malformed_request"
    STORE_UNAVAILABLE = "store_unavailable"
    STORE_QUERY_FAILED = "store_query_failed"
    STORE_INSERT_FAILED = "store_insert_failed"
    INTERNAL_ERROR = "internal_error"


ERROR_MESSAGES = {
    ErrorKind.MALFORMED_REQUEST: "Either email or phoneNumber must be provided",
    ErrorKind.STORE_UNAVAILABLE: "Contact store is unavailable",
    ErrorKind.STORE_QUERY_FAILED: "Failed to look up contacts",
    ErrorKind.STORE_INSERT_FAILED: "Failed to create contact",
    ErrorKind.INTERNAL_ERROR: "Internal error",
}


class IdentityResolutionError(Exception):
    """Failure surfaced to callers as an opaque error kind.

    The underlying driver exception, when there is one, is kept as
    ``__cause__`` for logging and never rendered into the response.
    """

    def __init__(self, kind: ErrorKind, message: str = None):
        self.kind = kind
        self.message = message or ERROR_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return 400 if self.kind == ErrorKind.MALFORMED_REQUEST else 500
