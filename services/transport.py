from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from models.label import Label, LabelCreation, LabelVisibility
from models.mail_message import MailMessage, MessageSummary

INBOX = "INBOX"
UNREAD = "UNREAD"


class MailTransportError(RuntimeError):
    """Raised by a transport when the remote mail service rejects a call."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class MailTransport(ABC):
    """Capability surface of an authenticated mail session."""

    @abstractmethod
    def create_label(self, name: str, visibility: LabelVisibility) -> LabelCreation:
        """Create a label, reporting ``AlreadyExists`` on a name conflict."""
        raise NotImplementedError

    @abstractmethod
    def list_labels(self) -> List[Label]:
        raise NotImplementedError

    @abstractmethod
    def list_messages(self, label_ids: Sequence[str], query: str | None = None) -> List[MessageSummary]:
        raise NotImplementedError

    @abstractmethod
    def get_message(self, message_id: str) -> MailMessage:
        raise NotImplementedError

    @abstractmethod
    def send_message(self, raw: str) -> str:
        """Send a base64url-encoded RFC 2822 message and return the sent id."""
        raise NotImplementedError

    @abstractmethod
    def modify_message_labels(
        self,
        message_id: str,
        add: Sequence[str] = (),
        remove: Sequence[str] = (),
    ) -> None:
        raise NotImplementedError
