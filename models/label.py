from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(slots=True, frozen=True)
class LabelVisibility:
    list_visibility: str = "labelShow"
    message_visibility: str = "show"


@dataclass(slots=True, frozen=True)
class Label:
    id: str
    name: str
    list_visibility: str | None = None
    message_visibility: str | None = None


@dataclass(slots=True, frozen=True)
class Created:
    """The label was created remotely with this id."""

    label_id: str


@dataclass(slots=True, frozen=True)
class AlreadyExists:
    """A label with this name already exists remotely."""

    name: str


LabelCreation = Union[Created, AlreadyExists]
