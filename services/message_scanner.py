from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from models.mail_message import MailMessage, MessageSummary
from services.transport import INBOX, MailTransport

LOGGER = logging.getLogger(__name__)
UNREAD_QUERY = "is:unread"
REPLY_MARKER_HEADER = "In-Reply-To"


@dataclass(slots=True, frozen=True)
class Classification:
    message: MailMessage
    needs_reply: bool


def needs_reply(message: MailMessage) -> bool:
    """A message carrying In-Reply-To has already been answered."""

    return not message.has_header(REPLY_MARKER_HEADER)


class UnrepliedMessageScanner:
    """Find unread inbox messages and decide which still need a reply."""

    def __init__(self, transport: MailTransport):
        self._transport = transport

    def list_candidates(self) -> List[MessageSummary]:
        candidates = self._transport.list_messages(label_ids=[INBOX], query=UNREAD_QUERY)
        LOGGER.info("Found %s unread inbox message(s)", len(candidates))
        return candidates

    def classify(self, message_id: str) -> Classification:
        message = self._transport.get_message(message_id)
        result = Classification(message=message, needs_reply=needs_reply(message))
        LOGGER.debug("Message %s needs reply: %s", message_id, result.needs_reply)
        return result
