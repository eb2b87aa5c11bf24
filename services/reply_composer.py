from __future__ import annotations

from models.mail_message import MailMessage
from models.reply import ReplyPayload
from utils.config import DEFAULT_REPLY_BODY

SUBJECT_PREFIX = "Re: "


class MissingHeaderError(ValueError):
    """The source message lacks a header needed to address the reply."""

    def __init__(self, message_id: str, header: str):
        super().__init__(f"Message {message_id} has no {header} header")
        self.message_id = message_id
        self.header = header


class ReplyComposer:
    """Build the vacation notice sent back to the original sender."""

    def __init__(self, body_text: str = DEFAULT_REPLY_BODY):
        self.body_text = body_text

    def compose(self, message: MailMessage) -> ReplyPayload:
        sender = message.header("From")
        if not sender:
            raise MissingHeaderError(message.id, "From")
        subject = message.header("Subject")
        if subject is None:
            raise MissingHeaderError(message.id, "Subject")
        return ReplyPayload(to=sender, subject_line=f"{SUBJECT_PREFIX}{subject}", body_text=self.body_text)
