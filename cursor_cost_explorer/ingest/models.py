"""
Data models for the ingestion layer.

Defines the immutable usage event consumed by every analyzer.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from cursor_cost_explorer.core.errors import ValidationError


class RequestKind(Enum):
    """Billing bucket a usage event falls into."""
    INCLUDED = "included"
    ON_DEMAND = "on_demand"
    ERRORED = "errored"


def classify_kind(kind: str) -> Optional[RequestKind]:
    """Classify a raw ``Kind`` string into a billing bucket.

    Matching is a case-insensitive substring test, checked in a fixed
    order: included, on-demand, then errored/aborted. Strings matching
    none of them are left unclassified.
    """
    lowered = kind.lower()
    if "included" in lowered:
        return RequestKind.INCLUDED
    if "on-demand" in lowered:
        return RequestKind.ON_DEMAND
    if "errored" in lowered or "aborted" in lowered:
        return RequestKind.ERRORED
    return None


@dataclass(frozen=True)
class UsageEvent:
    """Immutable record of a single Cursor request.

    Events are pure input: analyzers never modify them, and every derived
    aggregate is rebuilt from them on each call.
    """
    timestamp: datetime
    kind: str
    model: str
    cost: float
    total_tokens: int
    cache_read_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def __post_init__(self):
        """Validate the model is named and numeric fields are non-negative."""
        if not isinstance(self.timestamp, datetime):
            raise ValidationError("timestamp must be a datetime")
        if not self.model or not self.model.strip():
            raise ValidationError("model cannot be empty")
        if self.cost is None or self.cost < 0:
            raise ValidationError("cost cannot be negative")
        for name in ("total_tokens", "cache_read_tokens", "input_tokens", "output_tokens"):
            value = getattr(self, name)
            if value is None or value < 0:
                raise ValidationError(f"{name} cannot be negative")

    @property
    def bucket(self) -> Optional[RequestKind]:
        return classify_kind(self.kind)

    @property
    def is_included(self) -> bool:
        return self.bucket is RequestKind.INCLUDED

    @property
    def is_on_demand(self) -> bool:
        return self.bucket is RequestKind.ON_DEMAND

    @property
    def is_errored(self) -> bool:
        return self.bucket is RequestKind.ERRORED

    @property
    def utc_timestamp(self) -> datetime:
        """Timestamp in UTC; naive timestamps are taken to be UTC already."""
        if self.timestamp.tzinfo is None:
            return self.timestamp.replace(tzinfo=timezone.utc)
        return self.timestamp.astimezone(timezone.utc)

    @property
    def day(self) -> str:
        """UTC calendar day (YYYY-MM-DD)."""
        return self.utc_timestamp.strftime("%Y-%m-%d")
