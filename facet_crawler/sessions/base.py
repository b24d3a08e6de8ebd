from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..filters import Filter


@dataclass(frozen=True)
class Money:
    value: Optional[float] = None
    currency: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "currency": self.currency}


@dataclass
class Item:
    """A catalog entry as seen in one filtered result view."""

    external_id: str
    name: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    full_price: Optional[Money] = None
    sale_price: Optional[Money] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def comparable_metadata(self, positional_fields: Iterable[str] = ()) -> Dict[str, Any]:
        # Rank within a result list depends on the filters applied.
        skip = set(positional_fields)
        return {k: v for k, v in self.metadata.items() if k not in skip}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "externalId": self.external_id,
            "name": self.name,
            "url": self.url,
            "imageUrl": self.image_url,
            "fullPrice": self.full_price.to_dict() if self.full_price else None,
            "salePrice": self.sale_price.to_dict() if self.sale_price else None,
            "metadata": dict(self.metadata),
        }


class Session(Protocol):
    """
    One stateful browsing context on the remote catalog.
    Keep this small and stable: the engine only ever talks to these calls.
    """

    async def open(self, url: str) -> None:
        """Navigate to ``url``; a no-op when already there."""
        ...

    async def reset_filters(self) -> None:
        """Clear every applied filter back to the unfiltered view."""
        ...

    async def apply_filter(self, filter: Filter) -> None:
        """
        Apply ``filter`` on top of the current selection.
        Raises FilterApplicationError if it never reaches the selected state.
        """
        ...

    async def list_filters(self, group: str) -> List[Filter]:
        """Available (not disabled) filters of ``group`` in the current view."""
        ...

    async def extract_items(self) -> List[Item]:
        """Read the visible result set. Raises ExtractionError on failure."""
        ...


class SessionFactory(Protocol):
    """Hands out sessions. Acquiring one is assumed to be expensive."""

    async def acquire(self) -> Session:
        ...

    async def release(self, session: Session) -> None:
        ...

    async def close(self) -> None:
        ...
