"""Data models for sites, probe outcomes and stored auto-check records."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Closed taxonomy stored in the ``error_type`` column."""

    TIMEOUT = "timeout"
    DNS = "dns"
    FORBIDDEN = "403"
    SERVER_ERROR = "500"
    HTTP = "http"
    OK = "ok"


class FailureSignal(str, Enum):
    """Structured reason a request produced no response."""

    TIMEOUT = "timeout"
    DNS = "dns"
    CONNECTION = "connection"
    OTHER = "other"


def _error_kind(value: Optional[str]) -> ErrorKind:
    # rows written before the taxonomy was closed may hold "unknown"
    try:
        return ErrorKind(value)
    except ValueError:
        return ErrorKind.HTTP


class Site(BaseModel):
    """A monitored website as read from the registry."""

    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: str = Field(..., description="Owning user (user_id column)")
    name: str
    url: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Site":
        owner_id = row.get("user_id")
        return cls(
            id=row.get("id"),
            owner_id=str(owner_id) if owner_id is not None else None,
            name=row.get("name") or "",
            url=row.get("url") or "",
        )


class ProbeOutcome(BaseModel):
    """Classified result of one probe. Never persisted directly."""

    site: Site
    status_code: Optional[int] = None
    elapsed_ms: Optional[int] = None
    is_live: bool = False
    error_kind: ErrorKind


class AutoCheckRecord(BaseModel):
    """One row of an owner's automated-check snapshot."""

    id: Optional[int] = Field(default=None, description="Assigned by the store")
    owner_id: str
    site_id: int
    site_name: str
    site_url: str
    status_code: Optional[int] = None
    error_kind: ErrorKind
    response_time_ms: Optional[int] = None
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_live: bool = False

    @classmethod
    def from_outcome(cls, outcome: ProbeOutcome, checked_at: datetime) -> "AutoCheckRecord":
        site = outcome.site
        return cls(
            owner_id=site.owner_id,
            site_id=site.id,
            site_name=site.name,
            site_url=site.url,
            status_code=outcome.status_code,
            error_kind=outcome.error_kind,
            response_time_ms=outcome.elapsed_ms,
            checked_at=checked_at,
            is_live=outcome.is_live,
        )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AutoCheckRecord":
        return cls(
            id=row.get("id"),
            owner_id=str(row["user_id"]),
            site_id=row["website_id"],
            site_name=row.get("website_name") or "",
            site_url=row.get("website_url") or "",
            status_code=row.get("status_code"),
            error_kind=_error_kind(row.get("error_type")),
            response_time_ms=row.get("response_time_ms"),
            checked_at=row["checked_at"],
            is_live=bool(row.get("is_live")),
        )

    def to_row(self) -> dict[str, Any]:
        """Convert to a dict keyed by the auto_checks column names."""
        return {
            "user_id": self.owner_id,
            "website_id": self.site_id,
            "website_name": self.site_name,
            "website_url": self.site_url,
            "status_code": self.status_code,
            "error_type": self.error_kind.value,
            "response_time_ms": self.response_time_ms,
            "checked_at": self.checked_at.isoformat(),
            "is_live": self.is_live,
        }
