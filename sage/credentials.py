"""
Credential store for the Google Calendar API.

The authorized-user token is kept in a JSON file next to the OAuth client
secrets. When the token file is absent or unreadable the interactive
consent flow runs once and its result is saved for later invocations.
Expired access tokens are refreshed by the API client on use.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .errors import AuthorizationError

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]


class CredentialStore:
    """Loads, persists and (on first use) obtains calendar credentials."""

    def __init__(
        self,
        token_path: Path,
        client_secrets_path: Path,
        scopes: Optional[List[str]] = None,
    ):
        """
        Args:
            token_path: Where the authorized-user token is stored
            client_secrets_path: OAuth client file downloaded from Google Cloud
            scopes: OAuth scopes; defaults to read-only calendar access
        """
        self.token_path = Path(token_path).expanduser()
        self.client_secrets_path = Path(client_secrets_path).expanduser()
        self.scopes = scopes or list(SCOPES)
        self.logger = logging.getLogger("Sage.CredentialStore")

    def load(self) -> Optional[Credentials]:
        """Return the stored credentials, or None if absent or malformed."""
        if not self.token_path.exists():
            return None
        try:
            return Credentials.from_authorized_user_file(str(self.token_path), self.scopes)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
            return None

    def persist(self, credentials: Credentials) -> None:
        """
        Save credentials to the token file.

        Raises:
            OSError: If the file cannot be written
        """
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        self.token_path.write_text(credentials.to_json())

    def _run_consent_flow(self) -> Credentials:
        flow = InstalledAppFlow.from_client_secrets_file(str(self.client_secrets_path), self.scopes)
        return flow.run_local_server(port=0)

    async def authorize(self) -> Credentials:
        """
        Return usable credentials, running the consent flow if needed.

        Raises:
            AuthorizationError: If the consent flow fails or is cancelled
        """
        credentials = self.load()
        if credentials is not None:
            return credentials

        if not self.client_secrets_path.exists():
            raise AuthorizationError(
                f"OAuth client secrets not found: {self.client_secrets_path}"
            )

        self.logger.info("No stored token, starting consent flow")
        try:
            credentials = await asyncio.to_thread(self._run_consent_flow)
        except Exception as e:
            raise AuthorizationError(f"Consent flow failed: {e}") from e

        try:
            self.persist(credentials)
        except OSError as e:
            self.logger.error(f"Could not save token to {self.token_path}: {e}")

        return credentials
