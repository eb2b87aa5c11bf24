from __future__ import annotations

import base64
import dataclasses
import email
from email import policy
from typing import Dict, List, Sequence, Set

import pytest

from models.label import AlreadyExists, Created, Label, LabelCreation, LabelVisibility
from models.mail_message import MailMessage, MessageSummary
from services.auto_reply_cycle import AutoReplyCycle
from services.label_registry import LabelRegistry
from services.message_scanner import UnrepliedMessageScanner
from services.reply_composer import ReplyComposer
from services.reply_dispatcher import ReplyDispatcher
from services.transport import INBOX, UNREAD, MailTransport, MailTransportError


class FakeMailbox(MailTransport):
    """In-memory mailbox that behaves like the Gmail endpoints we call."""

    def __init__(self) -> None:
        self.labels: Dict[str, Label] = {}
        self.messages: Dict[str, MailMessage] = {}
        self.sent: List[email.message.Message] = []
        self.create_calls = 0
        self.get_calls: List[str] = []
        self.modify_calls: List[str] = []
        self.fail_create: Exception | None = None
        self.fail_get: Set[str] = set()
        self.fail_send_to: Set[str] = set()
        self.fail_modify: Set[str] = set()
        self.modify_errors: Dict[str, Exception] = {}
        self._label_counter = 0

    def add_message(self, message_id: str, headers: Dict[str, str], unread: bool = True) -> MailMessage:
        label_ids = {INBOX}
        if unread:
            label_ids.add(UNREAD)
        message = MailMessage(id=message_id, headers=tuple(headers.items()), label_ids=frozenset(label_ids))
        self.messages[message_id] = message
        return message

    def create_label(self, name: str, visibility: LabelVisibility) -> LabelCreation:
        self.create_calls += 1
        if self.fail_create is not None:
            raise self.fail_create
        if any(label.name == name for label in self.labels.values()):
            return AlreadyExists(name)
        self._label_counter += 1
        label_id = f"Label_{self._label_counter}"
        self.labels[label_id] = Label(label_id, name, visibility.list_visibility, visibility.message_visibility)
        return Created(label_id)

    def list_labels(self) -> List[Label]:
        return list(self.labels.values())

    def list_messages(self, label_ids: Sequence[str], query: str | None = None) -> List[MessageSummary]:
        wanted = set(label_ids)
        if query == "is:unread":
            wanted.add(UNREAD)
        return [
            MessageSummary(message.id)
            for message in self.messages.values()
            if wanted <= message.label_ids
        ]

    def get_message(self, message_id: str) -> MailMessage:
        self.get_calls.append(message_id)
        if message_id in self.fail_get:
            raise MailTransportError(f"cannot fetch {message_id}", status=500)
        return self.messages[message_id]

    def send_message(self, raw: str) -> str:
        parsed = email.message_from_bytes(base64.urlsafe_b64decode(raw), policy=policy.default)
        if str(parsed["To"]) in self.fail_send_to:
            raise MailTransportError("send rejected", status=400)
        self.sent.append(parsed)
        return f"sent-{len(self.sent)}"

    def modify_message_labels(self, message_id: str, add: Sequence[str] = (), remove: Sequence[str] = ()) -> None:
        self.modify_calls.append(message_id)
        if message_id in self.fail_modify:
            raise MailTransportError("modify rejected", status=503)
        if message_id in self.modify_errors:
            raise self.modify_errors[message_id]
        if message_id not in self.messages:
            raise MailTransportError("Requested entity was not found.", status=404)
        if any(label_id not in self.labels and label_id not in (INBOX, UNREAD) for label_id in add):
            raise MailTransportError("Invalid label", status=400)
        message = self.messages[message_id]
        label_ids = (set(message.label_ids) | set(add)) - set(remove)
        self.messages[message_id] = dataclasses.replace(message, label_ids=frozenset(label_ids))

    def recipients(self) -> List[str]:
        return [str(message["To"]) for message in self.sent]


@pytest.fixture
def mailbox() -> FakeMailbox:
    return FakeMailbox()


@pytest.fixture
def make_cycle(mailbox: FakeMailbox):
    def _make(**kwargs) -> AutoReplyCycle:
        return AutoReplyCycle(
            registry=LabelRegistry(mailbox),
            scanner=UnrepliedMessageScanner(mailbox),
            composer=ReplyComposer(),
            dispatcher=ReplyDispatcher(mailbox),
            **kwargs,
        )

    return _make
