from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from utils.config import AppConfig

LOGGER = logging.getLogger(__name__)
# gmail.modify covers reading, sending and relabeling messages; labels covers label creation.
SCOPES: Iterable[str] = (
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.labels",
)


class AuthService:
    """Produce an authorized Gmail session for the configured mailbox."""

    def __init__(self, config: AppConfig, scopes: Iterable[str] = SCOPES):
        self._config = config
        self._scopes = list(scopes)

    def _save_credentials(self, creds: Credentials) -> None:
        token_path = self._config.token_file
        LOGGER.debug("Persisting OAuth tokens to %s", token_path)
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json(), encoding="utf-8")

    def _load_cached_credentials(self) -> Credentials | None:
        token_path: Path = self._config.token_file
        if not token_path.exists():
            return None
        LOGGER.debug("Loading cached credential from %s", token_path)
        info = json.loads(token_path.read_text(encoding="utf-8"))
        return Credentials.from_authorized_user_info(info, self._scopes)

    def authenticate(self) -> Credentials:
        creds = self._load_cached_credentials()
        if creds and creds.valid:
            return creds

        if creds and creds.expired and creds.refresh_token:
            LOGGER.info("Refreshing expired Gmail token")
            creds.refresh(Request())
            self._save_credentials(creds)
            return creds

        secrets = self._config.credentials_file
        if not secrets.exists():
            raise FileNotFoundError(f"Missing OAuth client secrets: {secrets}")
        LOGGER.info("Initiating OAuth flow using %s", secrets)
        flow = InstalledAppFlow.from_client_secrets_file(str(secrets), scopes=self._scopes)
        creds = flow.run_local_server(port=0)
        self._save_credentials(creds)
        return creds
