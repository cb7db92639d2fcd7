import uuid
from contextvars import ContextVar

correlation_id: ContextVar[str | None] = ContextVar('correlation_id', default=None)


def get_correlation_id() -> str | None:
    return correlation_id.get()


def ensure_correlation_id(value: str | None = None) -> str:
    """
    Set the correlation ID for the current request, generating one if missing.
    """
    cid = value or str(uuid.uuid4())
    correlation_id.set(cid)
    return cid
