from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple


@dataclass(slots=True, frozen=True)
class MessageSummary:
    """Identifier returned by a listing query; fetch it to get headers."""

    id: str


@dataclass(slots=True, frozen=True)
class MailMessage:
    """Gmail message reduced to the headers and labels we inspect."""

    id: str
    headers: Tuple[Tuple[str, str], ...] = ()
    label_ids: FrozenSet[str] = field(default_factory=frozenset)

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for header_name, value in self.headers:
            if header_name.lower() == wanted:
                return value
        return None

    def has_header(self, name: str) -> bool:
        wanted = name.lower()
        return any(header_name.lower() == wanted for header_name, _ in self.headers)
