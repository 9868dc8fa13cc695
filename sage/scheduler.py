"""
One-shot reminder scheduling.

Each reminder is an asyncio task keyed by (user id, event id). Scheduling
the same key again cancels the earlier reminder, so re-running /reminder
for an event replaces its reminder rather than adding a second one.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from .adapters.base import Notifier

ReminderKey = Tuple[str, str]


class ReminderScheduler:
    """Cancellable delayed notifications."""

    def __init__(self, notify: Notifier):
        """
        Args:
            notify: Coroutine ``notify(user_id, text)`` that delivers a reminder
        """
        self.notify = notify
        self.logger = logging.getLogger("Sage.ReminderScheduler")
        self._tasks: Dict[ReminderKey, asyncio.Task] = {}

    def schedule(self, user_id: str, event_id: str, when: datetime, message: str) -> asyncio.Task:
        """Schedule ``message`` for ``when``, replacing any reminder with the same key."""
        key = (str(user_id), event_id)
        self.cancel(*key)

        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        delay = max(0.0, (when - datetime.now(timezone.utc)).total_seconds())

        self.logger.info(f"Scheduling reminder for user {user_id} in {delay:.0f}s")
        task = asyncio.create_task(self._fire(key, delay, message))
        self._tasks[key] = task
        return task

    async def _fire(self, key: ReminderKey, delay: float, message: str):
        user_id = key[0]
        try:
            await asyncio.sleep(delay)
            self.logger.info(f"Executing reminder for user {user_id}")
            await self.notify(user_id, message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to send reminder to user {user_id}: {e}")
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]

    def cancel(self, user_id: str, event_id: str) -> bool:
        """Cancel a pending reminder. Returns True if one was pending."""
        task = self._tasks.pop((str(user_id), event_id), None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def pending(self) -> List[ReminderKey]:
        return [key for key, task in self._tasks.items() if not task.done()]

    async def shutdown(self):
        """Cancel every pending reminder."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
