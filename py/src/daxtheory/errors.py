from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ERR_CODE_NOT_IMPLEMENTED = "NotImplementedException"

ErrorCode = Literal[
    "dax.malformed_endpoint",
    "dax.request_options",
    "dax.invalid_config",
    "NotImplementedException",
]


@dataclass(slots=True)
class DaxError(Exception):
    code: str
    message: str
    cause: Exception | None = None

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.code}: {self.message}: {self.cause}"
        return f"{self.code}: {self.message}"


class MalformedEndpointError(DaxError):
    """The endpoint handed to the dial factory is not an absolute URI."""


class RequestOptionsError(DaxError):
    """A per-call override could not be applied."""


class InvalidConfigError(DaxError):
    pass


class UnsupportedOperationError(DaxError):
    """Raised for administrative operations this client does not implement."""


_ERROR_TYPES: dict[str, type[DaxError]] = {
    "dax.malformed_endpoint": MalformedEndpointError,
    "dax.request_options": RequestOptionsError,
    "dax.invalid_config": InvalidConfigError,
    ERR_CODE_NOT_IMPLEMENTED: UnsupportedOperationError,
}


def new_error(code: ErrorCode, message: str) -> DaxError:
    cls = _ERROR_TYPES.get(code, DaxError)
    return cls(code=code, message=str(message))


def wrap_error(cause: Exception, code: ErrorCode, message: str) -> DaxError:
    cls = _ERROR_TYPES.get(code, DaxError)
    err = cls(code=code, message=str(message), cause=cause)
    err.__cause__ = cause
    return err


def unsupported(operation: str) -> UnsupportedOperationError:
    return UnsupportedOperationError(code=ERR_CODE_NOT_IMPLEMENTED, message=f"{operation} is not supported")


def is_not_implemented(exc: BaseException | None) -> bool:
    return isinstance(exc, DaxError) and exc.code == ERR_CODE_NOT_IMPLEMENTED
