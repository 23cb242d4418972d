"""Session state storage"""

import json
import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from design_chat.core.config import settings
from design_chat.models.errors import ApplicationError, ErrorCode, PersistenceError
from design_chat.models.schemas import SessionState

logger = logging.getLogger(__name__)

CLIENT_ID_PATTERN = r"^[A-Za-z0-9_-]{1,128}$"
_CLIENT_ID_RE = re.compile(CLIENT_ID_PATTERN)


class StateStore:
    """
    Stores per-client state under {state_dir}/{client_id}/.

    state.json holds the current session, counters.json the number of
    completed sessions, webhooks.json the session ids already reported.
    Read and write failures never propagate: bad state is cleared and
    treated as absent.
    """

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path or settings.state_dir).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using path: {self.base_path}")

    def _client_dir(self, client_id: str) -> Path:
        if not _CLIENT_ID_RE.match(client_id or ""):
            raise ApplicationError(ErrorCode.INVALID_INPUT, f"Invalid client id: {client_id!r}")
        return self.base_path / client_id

    def _read_json(self, path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read {path.name}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected content in {path.name}")
        return data

    def _write_text(self, path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            raise PersistenceError(f"Could not write {path.name}: {e}") from e

    def load(self, client_id: str) -> Optional[SessionState]:
        """Saved session for this client, or None (corrupt state is cleared)"""
        path = self._client_dir(client_id) / "state.json"
        try:
            data = self._read_json(path)
            if data is None:
                return None
            return SessionState.model_validate(data)
        except (PersistenceError, ValidationError) as e:
            logger.error(f"Could not load chat state for {client_id}: {e}")
            self.clear(client_id)
            return None

    def save(self, client_id: str, state: SessionState) -> bool:
        """Persist the session; on failure log, clear what is stored and return False"""
        path = self._client_dir(client_id) / "state.json"
        try:
            self._write_text(path, state.model_dump_json(indent=2))
            return True
        except PersistenceError as e:
            logger.error(f"Could not save chat state for {client_id}: {e}")
            self.clear(client_id)
            return False

    def clear(self, client_id: str) -> None:
        path = self._client_dir(client_id) / "state.json"
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Could not clear chat state for {client_id}: {e}")

    def get_session_count(self, client_id: str) -> int:
        path = self._client_dir(client_id) / "counters.json"
        try:
            data = self._read_json(path) or {}
        except PersistenceError as e:
            logger.error(f"Could not read session counter for {client_id}: {e}")
            return 0
        count = data.get("completed_sessions", 0)
        return count if isinstance(count, int) and count >= 0 else 0

    def increment_session_count(self, client_id: str) -> int:
        count = self.get_session_count(client_id) + 1
        path = self._client_dir(client_id) / "counters.json"
        try:
            self._write_text(path, json.dumps({"completed_sessions": count}))
        except PersistenceError as e:
            logger.error(f"Could not save session counter for {client_id}: {e}")
        return count

    def _webhooks_path(self, client_id: str) -> Path:
        return self._client_dir(client_id) / "webhooks.json"

    def is_webhook_sent(self, client_id: str, session_id: str) -> bool:
        try:
            data = self._read_json(self._webhooks_path(client_id)) or {}
        except PersistenceError as e:
            logger.error(f"Error checking webhook sent flag: {e}")
            return False
        return session_id in data.get("sent", [])

    def mark_webhook_sent(self, client_id: str, session_id: str) -> None:
        path = self._webhooks_path(client_id)
        try:
            data = self._read_json(path) or {}
            sent = list(data.get("sent", []))
            if session_id not in sent:
                sent.append(session_id)
            self._write_text(path, json.dumps({"sent": sent}))
        except PersistenceError as e:
            logger.error(f"Error marking webhook as sent: {e}")


# Global store instance
state_store = StateStore()
