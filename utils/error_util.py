"""
Error types and the JSON error envelope used across the gateway.
"""

from typing import Any

from fastapi.responses import JSONResponse

from models.response_model import ErrorEnvelope


class ModuleDiscoveryError(RuntimeError):
    """The module directory could not be read or a module could not be loaded."""


class ModuleError(Exception):
    """Failure channel of a handler module.

    Carries the same fields as a successful ``ModuleResponse``. ``body`` may be
    ``None``, which the dispatcher answers with a plain 404.
    """

    def __init__(self, status: int = 500, body: Any = None, cookie: list[str] | None = None):
        super().__init__(f'module call failed with status {status}')
        self.status = status
        self.body = body
        self.cookie = list(cookie or [])


def error_envelope(code: int, msg: str, data: Any = None) -> dict[str, Any]:
    return ErrorEnvelope(code=code, data=data, msg=msg).model_dump()


def create_error_response(status_code: int, msg: str, data: Any = None) -> JSONResponse:
    """
    Create a JSON error response using the ``{code, data, msg}`` envelope.
    """
    return JSONResponse(content=error_envelope(status_code, msg, data), status_code=status_code)


class BodyParseError(ValueError):
    """The request body could not be decoded."""
