"""
Data Models

Pydantic models for the catalog, element-set records and the cached
snapshot. Records and catalog entries are immutable once built.

Persisted snapshot layout:
    {"timestamp": <epoch milliseconds>, "data": [<record>, ...]}

Record wire layout (fields that are not set are omitted):
    {"id": 25544, "tle": "1 ...\\r\\n2 ...", "info": {"satid": 25544, "satname": "ISS"}}
    {"id": 2, "error": "Failed"}
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MS = timedelta(milliseconds=1)


def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware (or UTC-naive) datetime to integer epoch milliseconds."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // ONE_MS


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=int(value))


class CatalogEntry(BaseModel):
    """Static catalog entry, loaded once at startup"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str


class SatelliteInfo(BaseModel):
    """Catalog metadata attached to a record (upstream "info" object)"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    satid: Optional[int] = None
    satname: Optional[str] = None
    transactionscount: Optional[int] = None


class ElementSetRecord(BaseModel):
    """
    Result of acquiring one catalog entry.

    Exactly one of ``tle`` (the raw two-line element set text) and ``error``
    is populated.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    tle: Optional[str] = None
    error: Optional[str] = None
    info: Optional[SatelliteInfo] = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> "ElementSetRecord":
        if (self.tle is None) == (self.error is None):
            raise ValueError("exactly one of 'tle' and 'error' must be set")
        return self

    @classmethod
    def success(cls, id: int, tle: str, info: Optional[SatelliteInfo] = None) -> "ElementSetRecord":
        return cls(id=id, tle=tle, info=info)

    @classmethod
    def failure(cls, id: int, error: str) -> "ElementSetRecord":
        return cls(id=id, error=error)

    @property
    def ok(self) -> bool:
        return self.tle is not None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CacheSnapshot(BaseModel):
    """The most recently fetched batch of records, replaced as a whole"""
    model_config = ConfigDict(frozen=True)

    fetched_at: Optional[datetime] = None
    records: List[ElementSetRecord] = Field(default_factory=list)

    @field_validator("fetched_at")
    @classmethod
    def _normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Persisted with millisecond precision
        if value is None:
            return None
        return from_epoch_ms(to_epoch_ms(value))

    @classmethod
    def empty(cls) -> "CacheSnapshot":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.records

    def to_document(self) -> Dict[str, Any]:
        return {
            "timestamp": to_epoch_ms(self.fetched_at) if self.fetched_at else None,
            "data": [record.to_wire() for record in self.records],
        }

    @classmethod
    def from_document(cls, document: Any) -> "CacheSnapshot":
        """
        Rebuild a snapshot from its persisted JSON document.

        Raises ValueError (or pydantic.ValidationError) when the document does
        not have the expected shape.
        """
        if not isinstance(document, dict):
            raise ValueError(f"cache document must be an object, got {type(document).__name__}")

        timestamp = document.get("timestamp")
        if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))):
            raise ValueError(f"cache timestamp must be a number, got {type(timestamp).__name__}")

        data = document.get("data") or []
        if not isinstance(data, list):
            raise ValueError("cache document 'data' must be a list")

        try:
            fetched_at = from_epoch_ms(timestamp) if timestamp is not None else None
        except OverflowError as e:
            raise ValueError(f"cache timestamp out of range: {timestamp!r}") from e

        return cls(
            fetched_at=fetched_at,
            records=[ElementSetRecord.model_validate(item) for item in data],
        )
