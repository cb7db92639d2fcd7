import hashlib
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

OutboundCall = Callable[..., Awaitable[Any]]
ModuleHandler = Callable[[dict, OutboundCall], Awaitable[Any]]


@dataclass(frozen=True)
class RouteBinding:
    route: str
    handler: ModuleHandler | str
    identifier: str | None = None


@dataclass
class UploadedFile:
    """A file from a multipart upload, fully read into memory."""

    name: str
    data: bytes
    mimetype: str = 'application/octet-stream'
    size: int = 0
    md5: str = field(default='')

    def __post_init__(self):
        if not self.size:
            self.size = len(self.data)
        if not self.md5:
            self.md5 = hashlib.md5(self.data).hexdigest()
