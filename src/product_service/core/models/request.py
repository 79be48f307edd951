"""Explicit per-request context passed through every call boundary."""

from dataclasses import dataclass, field
from enum import StrEnum

from src.product_service.core.permissions import GUEST_ID


class DataSource(StrEnum):
    """Where paginated reads are served from."""

    DATABASE = "database"
    SEARCH = "search"


@dataclass(frozen=True)
class RequestContext:
    """Caller identity and routing hints for a single operation.

    Attributes:
        caller_id: Identity of the caller; empty values collapse to ``GUEST``.
        source: Routing hint for paginated reads.
        timeout: Deadline in seconds for the whole operation, ``None`` for none.
    """

    caller_id: str = GUEST_ID
    source: DataSource = DataSource.SEARCH
    timeout: float | None = field(default=None)

    def __post_init__(self) -> None:
        if not self.caller_id:
            object.__setattr__(self, "caller_id", GUEST_ID)
