"""Google Calendar provider client."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .credentials import CredentialStore
from .errors import AuthorizationError, ProviderQueryError
from .models import RawEvent

logger = logging.getLogger(__name__)

QUERY_WINDOW_DAYS = 10


def query_window(now: Optional[datetime] = None, days: int = QUERY_WINDOW_DAYS) -> Tuple[str, str]:
    """RFC 3339 bounds for the window ``now .. now + days``."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.isoformat(), (now + timedelta(days=days)).isoformat()


class GoogleCalendarProvider:
    """Lists events of one calendar with recurring events expanded."""

    def __init__(self, credential_store: CredentialStore, calendar_id: str):
        self.credential_store = credential_store
        self.calendar_id = calendar_id

    def _fetch(self, credentials, time_min: str, time_max: str) -> List[Dict[str, Any]]:
        service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        items: List[Dict[str, Any]] = []
        page_token = None
        while True:
            result = service.events().list(
                calendarId=self.calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            ).execute()
            items.extend(result.get("items", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                return items

    async def list_events(self, time_min: str, time_max: str, credentials=None) -> List[RawEvent]:
        """
        Fetch events starting in ``[time_min, time_max)`` ordered by start.

        Args:
            time_min: RFC 3339 lower bound
            time_max: RFC 3339 upper bound
            credentials: Authorized credentials; obtained from the store if None

        Raises:
            AuthorizationError: If the stored grant was revoked or cannot refresh
            ProviderQueryError: On network or API failure
        """
        if credentials is None:
            credentials = await self.credential_store.authorize()

        try:
            items = await asyncio.to_thread(self._fetch, credentials, time_min, time_max)
        except RefreshError as e:
            raise AuthorizationError(f"Calendar grant could not be refreshed: {e}") from e
        except (HttpError, TransportError, httplib2.HttpLib2Error, OSError) as e:
            raise ProviderQueryError(f"Failed to list events for {self.calendar_id}: {e}") from e

        logger.debug(f"Fetched {len(items)} events from {self.calendar_id}")
        return [RawEvent.from_api(item) for item in items]
