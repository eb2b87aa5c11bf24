from __future__ import annotations

import logging

from models.label import AlreadyExists, Created, LabelVisibility
from services.transport import MailTransport
from utils.config import DEFAULT_LABEL_NAME

LOGGER = logging.getLogger(__name__)


class LabelResolutionError(LookupError):
    """Creation reported a conflict but no label of that name could be found."""


class LabelRegistry:
    """Create-or-fetch the label that marks auto-replied messages."""

    def __init__(
        self,
        transport: MailTransport,
        label_name: str = DEFAULT_LABEL_NAME,
        visibility: LabelVisibility | None = None,
    ):
        self._transport = transport
        self.label_name = label_name
        self._visibility = visibility or LabelVisibility()
        self._label_id: str | None = None

    def ensure_label(self) -> str:
        if self._label_id is not None:
            return self._label_id

        LOGGER.debug("Ensuring label %s exists", self.label_name)
        result = self._transport.create_label(self.label_name, self._visibility)
        if isinstance(result, Created):
            label_id = result.label_id
        elif isinstance(result, AlreadyExists):
            label_id = self._lookup_existing()
        else:
            raise TypeError(f"Unexpected label creation result: {result!r}")

        self._label_id = label_id
        return label_id

    def reset(self) -> None:
        self._label_id = None

    def _lookup_existing(self) -> str:
        for label in self._transport.list_labels():
            if label.name == self.label_name:
                LOGGER.info("Label %s already exists as %s", self.label_name, label.id)
                return label.id
        raise LabelResolutionError(f"Label {self.label_name!r} reported as existing but was not listed")
