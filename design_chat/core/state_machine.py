"""Generation progress state machine"""

from enum import Enum
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class GenerationPhase(str, Enum):
    """Generation phases

    IDLE → CAPTURING_SCREENSHOT? → ANALYZING_REFERENCES? → AUDITING?
         → GENERATING_SPECIFICATION → PREPARING_HTML → GENERATING_HTML
         → PROCESSING_HTML → DONE
         ↘──────────────────────── FAILED ─────────────────────────↗
    """
    IDLE = "IDLE"
    CAPTURING_SCREENSHOT = "CAPTURING_SCREENSHOT"
    ANALYZING_REFERENCES = "ANALYZING_REFERENCES"
    AUDITING = "AUDITING"
    GENERATING_SPECIFICATION = "GENERATING_SPECIFICATION"
    PREPARING_HTML = "PREPARING_HTML"
    GENERATING_HTML = "GENERATING_HTML"
    PROCESSING_HTML = "PROCESSING_HTML"
    DONE = "DONE"
    FAILED = "FAILED"


# Rough share of the run completed when a phase starts
PHASE_PROGRESS = {
    GenerationPhase.IDLE: 0.0,
    GenerationPhase.CAPTURING_SCREENSHOT: 0.05,
    GenerationPhase.ANALYZING_REFERENCES: 0.15,
    GenerationPhase.AUDITING: 0.3,
    GenerationPhase.GENERATING_SPECIFICATION: 0.4,
    GenerationPhase.PREPARING_HTML: 0.55,
    GenerationPhase.GENERATING_HTML: 0.65,
    GenerationPhase.PROCESSING_HTML: 0.9,
    GenerationPhase.DONE: 1.0,
    GenerationPhase.FAILED: 1.0,
}


class GenerationProgress:
    """Tracks one generation run and the events shown to the user"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.phase = GenerationPhase.IDLE
        self.started_at: Optional[datetime] = None
        self.last_updated: Optional[datetime] = None
        self.event_log: List[Dict[str, Any]] = []

    def log_event(self, phase: GenerationPhase, detail: str):
        """Record a transition; terminal phases are final"""
        if self.is_terminal():
            logger.debug(f"Ignoring event after terminal phase {self.phase.value}: {detail}")
            return

        now = datetime.now(timezone.utc)
        self.event_log.append({
            "id": len(self.event_log) + 1,
            "ts": now.isoformat(),
            "phase": phase.value,
            "detail": detail,
            "progress": PHASE_PROGRESS.get(phase, 0.0)
        })
        self.phase = phase
        self.last_updated = now
        if not self.started_at:
            self.started_at = now

        logger.debug(f"Logged event: {detail} (phase: {phase.value})")

    def get_latest_event(self) -> Optional[Dict[str, Any]]:
        if not self.event_log:
            return None
        return self.event_log[-1]

    def events_after(self, event_id: int) -> List[Dict[str, Any]]:
        return [event for event in self.event_log if event["id"] > event_id]

    def is_terminal(self) -> bool:
        return self.phase in (GenerationPhase.DONE, GenerationPhase.FAILED)
