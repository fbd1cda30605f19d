from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

# MailHog serialises Go timestamps with nanosecond precision; datetime stops at microseconds.
_SUB_MICROSECOND_RE = re.compile(r"(\.\d{6})\d+")
_ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")


class EmailAddr(BaseModel):
    """A mailbox as captured by MailHog. Renders as `mailbox@domain`."""

    mailbox: str = Field(..., alias="Mailbox")
    domain: str = Field(..., alias="Domain")
    params: str = Field(default="", alias="Params")
    # Not used for display or verification, kept so decode stays lossless.
    relays: Optional[Union[str, List[str]]] = Field(default=None, alias="Relays")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def __str__(self) -> str:
        return f"{self.mailbox}@{self.domain}"


class MessageContent(BaseModel):
    """Headers, raw body and encoded size of a captured message."""

    headers: Dict[str, List[str]] = Field(..., alias="Headers")
    body: str = Field(..., alias="Body")
    size: StrictInt = Field(..., ge=0, alias="Size")
    mime: Optional[Any] = Field(default=None, alias="MIME")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def header(self, name: str) -> List[str]:
        """Values of the header stored under exactly `name`, or an empty list."""
        return list(self.headers.get(name, []))


class Message(BaseModel):
    """
    A single captured message.

    Messages order by creation time only: `sorted(items)` yields the order in
    which MailHog accepted them. Ties have no defined order.
    """

    id: str = Field(..., alias="ID")
    from_: EmailAddr = Field(..., alias="From")
    to: List[EmailAddr] = Field(..., alias="To")
    content: MessageContent = Field(..., alias="Content")
    created: datetime = Field(..., alias="Created")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("created", mode="before")
    @classmethod
    def _truncate_sub_microseconds(cls, value: Any) -> Any:
        # Only RFC 3339 strings; epochs would otherwise be taken as UTC.
        if not isinstance(value, str) or not _ISO_DATETIME_RE.match(value):
            raise ValueError(f"Created must be an ISO-8601 date-time string, got {value!r}")
        return _SUB_MICROSECOND_RE.sub(r"\1", value, count=1)

    @field_validator("created")
    @classmethod
    def _normalize_to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("Created timestamp has no timezone designator")
        return value.astimezone(timezone.utc)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self.created < other.created

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self.created > other.created


class MessageList(BaseModel):
    """One page of messages as returned by the listing and search endpoints."""

    total: StrictInt = Field(..., ge=0)
    start: StrictInt = Field(..., ge=0)
    count: StrictInt = Field(..., ge=0)
    items: List[Message] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("items", mode="before")
    @classmethod
    def _null_items_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def _check_page_counts(self) -> "MessageList":
        if self.count != len(self.items):
            raise ValueError(f"count={self.count} but page holds {len(self.items)} items")
        if self.count > self.total:
            raise ValueError(f"count={self.count} exceeds total={self.total}")
        return self

    def in_creation_order(self) -> "MessageList":
        """Copy of this page with items sorted by creation time ascending."""
        return self.model_copy(update={"items": sorted(self.items)})


class ListMessagesParams(BaseModel):
    """Paging for the listing endpoint. Unset fields leave paging to the server."""

    start: Optional[StrictInt] = Field(default=None, ge=0)
    limit: Optional[StrictInt] = Field(default=None, ge=1)

    model_config = ConfigDict(frozen=True)

    def to_query(self) -> Dict[str, str]:
        return {key: str(value) for key, value in self.model_dump(exclude_none=True).items()}


class SearchKind(str, Enum):
    SENDER = "from"
    RECIPIENT = "to"
    CONTAINING = "containing"


class SearchParams(BaseModel):
    """
    Filter for the search endpoint.

    How `query` matches (case sensitivity, which parts of the message are
    scanned) is decided by the server; the client forwards it untouched.
    """

    kind: SearchKind
    query: str
    start: Optional[StrictInt] = Field(default=None, ge=0)
    limit: Optional[StrictInt] = Field(default=None, ge=1)

    model_config = ConfigDict(frozen=True)

    def to_query(self) -> Dict[str, str]:
        query = {"kind": self.kind.value, "query": self.query}
        if self.start is not None:
            query["start"] = str(self.start)
        if self.limit is not None:
            query["limit"] = str(self.limit)
        return query
