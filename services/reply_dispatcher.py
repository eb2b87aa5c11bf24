from __future__ import annotations

import base64
import logging
from email.message import EmailMessage

from models.reply import ReplyPayload
from services.transport import INBOX, MailTransport

LOGGER = logging.getLogger(__name__)


class DispatchError(RuntimeError):
    """The reply could not be sent."""


class MarkProcessedError(RuntimeError):
    """The source message could not be relabeled."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


def encode_reply(payload: ReplyPayload) -> str:
    """Encode a reply as the base64url RFC 5322 ``raw`` value Gmail expects."""

    message = EmailMessage()
    message["To"] = payload.to
    message["Subject"] = payload.subject_line
    message.set_content(payload.body_text)
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")


class ReplyDispatcher:
    """Send replies and mark their source messages as handled."""

    def __init__(self, transport: MailTransport):
        self._transport = transport

    def dispatch(self, payload: ReplyPayload) -> str:
        raw = encode_reply(payload)
        try:
            sent_id = self._transport.send_message(raw)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Failed to send auto-reply to %s: %s", payload.to, exc)
            raise DispatchError(str(exc)) from exc
        LOGGER.info("Auto-reply sent to %s", payload.to)
        return sent_id

    def mark_processed(self, message_id: str, label_id: str) -> None:
        try:
            self._transport.modify_message_labels(message_id, add=[label_id], remove=[INBOX])
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Failed to label message %s: %s", message_id, exc)
            raise MarkProcessedError(str(exc), status=getattr(exc, "status", None)) from exc
        LOGGER.info("Message %s labeled and moved out of the inbox", message_id)
