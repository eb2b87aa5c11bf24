from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from models.label import AlreadyExists, Created, Label, LabelCreation, LabelVisibility
from models.mail_message import MailMessage, MessageSummary
from services.auth_service import AuthService
from services.transport import MailTransport, MailTransportError
from utils.config import AppConfig

LOGGER = logging.getLogger(__name__)
HTTP_CONFLICT = 409
METADATA_HEADERS = ("From", "Subject", "In-Reply-To")
# Failures below the Gmail API layer: sockets, httplib2, token refresh.
NETWORK_ERRORS = (OSError, HttpLib2Error, GoogleAuthError)


class GmailService(MailTransport):
    """Gmail API implementation of the mail transport."""

    def __init__(self, config: AppConfig, auth_service: AuthService, client=None):
        self._config = config
        if client is None:
            creds = auth_service.authenticate()
            client = build("gmail", "v1", credentials=creds, cache_discovery=False)
        self._client = client

    @property
    def user_id(self) -> str:
        return self._config.user_id

    def create_label(self, name: str, visibility: LabelVisibility) -> LabelCreation:
        body = {
            "name": name,
            "labelListVisibility": visibility.list_visibility,
            "messageListVisibility": visibility.message_visibility,
        }
        request = self._client.users().labels().create(userId=self.user_id, body=body)
        try:
            response = _execute(request, f"create label {name!r}")
        except MailTransportError as exc:
            if exc.status == HTTP_CONFLICT:
                LOGGER.debug("Label %s already exists", name)
                return AlreadyExists(name)
            raise
        LOGGER.info("Created label %s with id %s", name, response["id"])
        return Created(response["id"])

    def list_labels(self) -> List[Label]:
        response = _execute(self._client.users().labels().list(userId=self.user_id), "list labels")
        return [
            Label(
                id=item["id"],
                name=item["name"],
                list_visibility=item.get("labelListVisibility"),
                message_visibility=item.get("messageListVisibility"),
            )
            for item in response.get("labels", [])
        ]

    def list_messages(self, label_ids: Sequence[str], query: str | None = None) -> List[MessageSummary]:
        summaries: List[MessageSummary] = []
        page_token = None
        while True:
            params: Dict = {"userId": self.user_id, "labelIds": list(label_ids)}
            if query:
                params["q"] = query
            if page_token:
                params["pageToken"] = page_token
            response = _execute(self._client.users().messages().list(**params), "list messages")
            summaries.extend(MessageSummary(item["id"]) for item in response.get("messages", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        LOGGER.info("Listed %s message(s) for labels %s", len(summaries), list(label_ids))
        return summaries

    def get_message(self, message_id: str) -> MailMessage:
        request = self._client.users().messages().get(
            userId=self.user_id,
            id=message_id,
            format="metadata",
            metadataHeaders=list(METADATA_HEADERS),
        )
        response = _execute(request, f"fetch message {message_id}")
        payload = response.get("payload", {})
        headers = tuple(
            (header.get("name", ""), header.get("value", "")) for header in payload.get("headers", [])
        )
        return MailMessage(
            id=response["id"],
            headers=headers,
            label_ids=frozenset(response.get("labelIds", [])),
        )

    def send_message(self, raw: str) -> str:
        request = self._client.users().messages().send(userId=self.user_id, body={"raw": raw})
        response = _execute(request, "send message")
        LOGGER.debug("Sent message %s", response.get("id"))
        return response.get("id", "")

    def modify_message_labels(
        self,
        message_id: str,
        add: Sequence[str] = (),
        remove: Sequence[str] = (),
    ) -> None:
        body = {"addLabelIds": list(add), "removeLabelIds": list(remove)}
        request = self._client.users().messages().modify(userId=self.user_id, id=message_id, body=body)
        _execute(request, f"modify labels of {message_id}")
        LOGGER.debug("Modified labels of %s: +%s -%s", message_id, list(add), list(remove))


def _execute(request, action: str) -> Dict:
    """Run a prepared API request, turning any transport failure into ``MailTransportError``."""

    try:
        return request.execute()
    except HttpError as exc:
        status = _status_of(exc)
        if status != HTTP_CONFLICT:
            LOGGER.error("Gmail API failed to %s (status %s): %s", action, status, exc)
        raise MailTransportError(f"Failed to {action}: {exc}", status=status) from exc
    except NETWORK_ERRORS as exc:
        LOGGER.error("Network failure while trying to %s: %s", action, exc)
        raise MailTransportError(f"Failed to {action}: {exc}") from exc


def _status_of(exc: HttpError) -> int | None:
    try:
        return int(exc.resp.status)
    except (AttributeError, TypeError, ValueError):
        return None
