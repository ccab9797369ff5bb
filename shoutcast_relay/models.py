"""Published status record and cache state."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class StatusRecord(BaseModel):
    """Normalized snapshot of the upstream SHOUTcast server.

    Every field has a zero value so the published JSON never contains null.
    Attribute names are snake_case; the JSON form uses camelCase aliases
    (``serverStatus``, ``bitrateKbps``, ...).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    server_status: str = ""
    is_server_up: bool = False
    stream_status: str = ""
    is_stream_up: bool = False
    current_listeners: int = Field(0, ge=0)
    max_listeners: int = Field(0, ge=0)
    unique_listeners: int = Field(0, ge=0)
    bitrate_kbps: str = ""
    listener_peak: str = ""
    avg_listen_time: str = ""
    stream_title: str = ""
    stream_genre: str = ""
    content_type: str = ""
    stream_url: str = ""
    audio_stream_url: str = ""
    current_song: str = ""
    last_updated: datetime = Field(default_factory=utc_now)

    @model_validator(mode="before")
    @classmethod
    def _drop_none(cls, data: Any) -> Any:
        """Treat explicit None as "unset" so the field falls back to its zero value."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @classmethod
    def empty(cls, last_updated: Optional[datetime] = None) -> "StatusRecord":
        """Build the fully zeroed record served before the first successful scrape."""
        if last_updated is None:
            return cls()
        return cls(last_updated=last_updated)

    def to_public_dict(self) -> Dict[str, Any]:
        """JSON-ready mapping with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class LivenessResponse(BaseModel):
    """Liveness endpoint response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    last_updated: datetime


@dataclass
class CacheState:
    """State owned by a single CacheCoordinator.

    Attributes:
        current: Last successfully extracted record (replaced wholesale)
        last_fetch_at: Monotonic time the current record was fetched, None if never
        refreshing: True while a refresh is in flight
        current_started_at: Monotonic time the refresh that produced ``current`` began
    """

    current: StatusRecord
    last_fetch_at: Optional[float] = None
    refreshing: bool = False
    current_started_at: Optional[float] = None
