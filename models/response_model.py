from typing import Any

from pydantic import BaseModel, Field


class ModuleResponse(BaseModel):
    """Outcome of a handler module: upstream status, payload and cookies."""

    status: int = Field(200)
    body: Any = Field(None)
    cookie: list[str] = Field(default_factory=list)


class ErrorEnvelope(BaseModel):
    code: int = Field(...)
    data: Any = Field(None)
    msg: str = Field(..., min_length=1, max_length=255)
