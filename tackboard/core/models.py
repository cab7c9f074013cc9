"""
FILE: tackboard/core/models.py
PURPOSE: Immutable domain models for boards, columns, cards and notes
EXPORTS:
  - Note (frozen dataclass)
  - Card (frozen dataclass)
  - Column (frozen dataclass)
  - BoardMetadata (frozen dataclass)
  - Board (frozen dataclass)
  - BoardSummary (dataclass)
  - utcnow() -> datetime
DEPENDENCIES:
  - dataclasses (stdlib)
  - datetime (stdlib)
  - json (stdlib)
  - types.MappingProxyType (stdlib)
NOTES:
  - All models have to_dict()/from_dict() for storage and to_json() for output
  - Serialized keys are camelCase (columnOrder, cardHash, createdAt, ...)
  - Timestamps are timezone-aware UTC datetimes, stored as ISO-8601 strings
  - Board maps are read-only views; a board is never changed in place,
    every engine operation builds a new one with dataclasses.replace()
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from .constants import SCHEMA_VERSION


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_ts(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; missing values become 'now'."""
    if isinstance(value, datetime):
        parsed = value
    elif value:
        # JavaScript toISOString() emits a trailing 'Z'
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    else:
        return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Note:
    """A short comment attached to a card."""

    id: str
    text: str
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "createdAt": _format_ts(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            id=data["id"],
            text=data.get("text", ""),
            created_at=_parse_ts(data.get("createdAt")),
        )


@dataclass(frozen=True)
class Card:
    """A single work item, ranked by `order` inside its column."""

    id: str
    column_id: str
    order: int
    title: str
    description: Optional[str] = None
    notes: Tuple[Note, ...] = ()
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    external_hash: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "notes", tuple(self.notes))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "columnId": self.column_id,
            "order": self.order,
            "createdAt": _format_ts(self.created_at),
            "updatedAt": _format_ts(self.updated_at),
            "notes": [note.to_dict() for note in self.notes],
        }
        if self.external_hash:
            data["cardHash"] = self.external_hash
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Card":
        return cls(
            id=data["id"],
            column_id=data["columnId"],
            order=int(data.get("order", 0)),
            title=data.get("title", ""),
            description=data.get("description") or None,
            notes=tuple(Note.from_dict(n) for n in data.get("notes") or []),
            created_at=_parse_ts(data.get("createdAt")),
            updated_at=_parse_ts(data.get("updatedAt")),
            external_hash=data.get("cardHash") or None,
        )

    def to_json(self) -> str:
        """Serialize card to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True)
class Column:
    """A workflow stage (e.g., TODO, In Progress, Done)."""

    id: str
    title: str
    order: int = 0
    external_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "title": self.title, "order": self.order}
        if self.external_hash:
            data["columnHash"] = self.external_hash
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            order=int(data.get("order", 0)),
            external_hash=data.get("columnHash") or None,
        )

    def to_json(self) -> str:
        """Serialize column to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True)
class BoardMetadata:
    """Board-level bookkeeping."""

    version: str = SCHEMA_VERSION
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "version": self.version,
            "createdAt": _format_ts(self.created_at),
            "updatedAt": _format_ts(self.updated_at),
        }
        if self.title:
            data["title"] = self.title
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardMetadata":
        return cls(
            version=data.get("version", SCHEMA_VERSION),
            created_at=_parse_ts(data.get("createdAt")),
            updated_at=_parse_ts(data.get("updatedAt")),
            title=data.get("title") or None,
        )


@dataclass(frozen=True)
class Board:
    """
    The full normalized board value.

    Attributes:
        id: Board identifier
        cards: Read-only map of card id -> Card
        columns: Read-only map of column id -> Column
        column_order: Column ids in display order
        metadata: Version and timestamps
        retired_card_hashes: Card hashes whose holders were deleted
        retired_column_hashes: Column hashes whose holders were deleted
    """

    id: str
    cards: Mapping[str, Card] = field(default_factory=dict)
    columns: Mapping[str, Column] = field(default_factory=dict)
    column_order: Tuple[str, ...] = ()
    metadata: BoardMetadata = field(default_factory=BoardMetadata)
    retired_card_hashes: FrozenSet[str] = frozenset()
    retired_column_hashes: FrozenSet[str] = frozenset()

    def __post_init__(self):
        # Copy into fresh read-only views so no caller holds a mutable alias
        object.__setattr__(self, "cards", MappingProxyType(dict(self.cards)))
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))
        object.__setattr__(self, "column_order", tuple(self.column_order))
        object.__setattr__(
            self, "retired_card_hashes", frozenset(self.retired_card_hashes)
        )
        object.__setattr__(
            self, "retired_column_hashes", frozenset(self.retired_column_hashes)
        )

    @property
    def updated_at(self) -> datetime:
        return self.metadata.updated_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cards": {cid: card.to_dict() for cid, card in self.cards.items()},
            "columns": {cid: col.to_dict() for cid, col in self.columns.items()},
            "columnOrder": list(self.column_order),
            "metadata": self.metadata.to_dict(),
            "retiredHashes": {
                "card": sorted(self.retired_card_hashes),
                "column": sorted(self.retired_column_hashes),
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Board":
        retired = data.get("retiredHashes") or {}
        return cls(
            id=data["id"],
            cards={
                cid: Card.from_dict(card)
                for cid, card in (data.get("cards") or {}).items()
            },
            columns={
                cid: Column.from_dict(col)
                for cid, col in (data.get("columns") or {}).items()
            },
            column_order=tuple(data.get("columnOrder") or ()),
            metadata=BoardMetadata.from_dict(data.get("metadata") or {}),
            retired_card_hashes=frozenset(retired.get("card") or ()),
            retired_column_hashes=frozenset(retired.get("column") or ()),
        )

    def to_json(self) -> str:
        """Serialize board to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


@dataclass
class BoardSummary:
    """Minimal board info for list views."""

    id: str
    created_at: datetime
    updated_at: datetime
    card_count: int
    column_count: int
    data_source: str
    title: Optional[str] = None

    @classmethod
    def from_board(cls, board: Board, data_source: str) -> "BoardSummary":
        return cls(
            id=board.id,
            title=board.metadata.title,
            created_at=board.metadata.created_at,
            updated_at=board.metadata.updated_at,
            card_count=len(board.cards),
            column_count=len(board.columns),
            data_source=data_source,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": _format_ts(self.created_at),
            "updatedAt": _format_ts(self.updated_at),
            "cardCount": self.card_count,
            "columnCount": self.column_count,
            "dataSource": self.data_source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardSummary":
        return cls(
            id=data["id"],
            title=data.get("title"),
            created_at=_parse_ts(data.get("createdAt")),
            updated_at=_parse_ts(data.get("updatedAt")),
            card_count=int(data.get("cardCount", 0)),
            column_count=int(data.get("columnCount", 0)),
            data_source=data.get("dataSource", ""),
        )
