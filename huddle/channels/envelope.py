from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from huddle.constants.events import OutboundEvent


def to_wire(data: Any) -> Any:
    """Render models (and containers of models) as camelCase JSON-ready values."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, (list, tuple)):
        return [to_wire(item) for item in data]
    if isinstance(data, dict):
        return {key: to_wire(value) for key, value in data.items()}
    return data


@dataclass(frozen=True)
class Delivery:
    """One outbound event and the sessions it is addressed to.

    ``data`` is snapshotted to its wire form on creation, so later in-place
    mutation of a message (reactions, read receipts) does not leak into an
    event that was already emitted.
    """

    event: OutboundEvent
    data: Any
    recipients: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", to_wire(self.data))
        object.__setattr__(self, "recipients", tuple(self.recipients))

    def frame(self) -> dict[str, Any]:
        """JSON-ready ``{"event", "data"}`` frame."""
        return {"event": self.event.value, "data": self.data}

    def is_for(self, session_id: str) -> bool:
        return session_id in self.recipients
