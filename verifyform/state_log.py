# verifyform/state_log.py
from __future__ import annotations
import logging
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .form_state import FormState

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES: int = 10


class StateRecorder(Protocol):
    def record(self, state: FormState) -> None: ...


class StateHistory:
    """
    Keeps the most recent form snapshots in memory, tagged with the
    requirement key they came from. Handy for debugging a session.
    """

    def __init__(self, collection_key: str, max_entries: int = MAX_LOG_ENTRIES) -> None:
        self.collection_key = collection_key
        self._entries: deque[dict[str, Any]] = deque(maxlen=max_entries)

    def record(self, state: FormState) -> None:
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'collectionKey': self.collection_key,
            'currentStep': state.current_step.value,
            'state': state.to_dict(),
        }
        self._entries.append(entry)
        logger.debug(f"Recorded form state at step '{entry['currentStep']}' ({len(self._entries)} kept).")

    def entries(self) -> list[dict[str, Any]]:
        return list(self._entries)

    def latest(self) -> dict[str, Any] | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()
