"""Conversation manager: owns the live interview sessions.

Lifecycle:
    Active -> Cancelled        (explicit cancel)
    Active -> Expired          (sweeper, idle past the session timeout)
    any    -> PrdGenerated     (milestone set after a document is produced)
    any    -> SubmittedToJira  (milestone set after an issue-tracker submission)

Nothing ever returns to Active, and only Active sessions accept user messages.

Sessions live in a plain dict keyed by id. Inserts use setdefault and removals
use pop, both single-key operations; every multi-field change to a session
happens under that session's own lock. No lock covers more than one session,
so a slow or contended session never blocks another.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Mapping, Optional

from config import settings
from contracts import (
    DocumentPreview,
    ExtractionOutcome,
    Message,
    MessageRole,
    Phase,
    PHASE_ORDER,
    SessionStatus,
    SessionSummary,
    SweepReport,
    Template,
    utcnow,
)
from orchestrator.completion import estimate_session
from orchestrator.errors import (
    SessionExpiredError,
    SessionIdCollisionError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from orchestrator.session import Session

logger = logging.getLogger(__name__)

NOT_COVERED = "[Not yet covered]"


def merge_content(existing: str, new: str) -> str:
    """Merge a newly extracted fragment into what a section already holds.

    - new text already contained in the existing text (ignoring case): keep existing
    - existing text contained in the new text: the new, fuller text replaces it
    - otherwise both are kept, existing first, separated by a blank line
    """
    existing_folded = existing.casefold()
    new_folded = new.casefold()
    if new_folded in existing_folded:
        return existing
    if existing_folded in new_folded:
        return new
    return f"{existing}\n\n{new}"


class ConversationManager:
    """Creates, looks up, transitions and evicts interview sessions.

    Responsibilities:
    - Atomic create / lookup / remove on the session collection
    - Status gate for user messages (Active only)
    - Merging extracted data and applying phase directives
    - Background expiry and removal of idle sessions
    """

    def __init__(
        self,
        session_timeout: Optional[timedelta] = None,
        removal_window: Optional[timedelta] = None,
        cleanup_interval: Optional[timedelta] = None,
        completion_threshold: Optional[float] = None,
        default_template: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the manager.

        Args:
            session_timeout: Idle time after which an Active session expires
            removal_window: Idle time after which an Expired/Cancelled session is deleted.
                Measured from last activity, so it must be shorter than session_timeout.
                Defaults to the configured window, scaled when session_timeout is given.
            cleanup_interval: Period of the background sweeper
            completion_threshold: Score needed (in the final phase) for an interview to be complete
            default_template: Template name for sessions created without one
            clock: Source of the current UTC time (tests pass a fake)
        """
        if session_timeout is None:
            self.session_timeout = settings.session_timeout
            self.removal_window = settings.session_removal if removal_window is None else removal_window
        else:
            self.session_timeout = session_timeout
            if removal_window is None:
                ratio = settings.session_removal / settings.session_timeout
                removal_window = session_timeout * ratio
            self.removal_window = removal_window
        if self.removal_window >= self.session_timeout:
            raise ValueError("removal_window must be shorter than session_timeout")
        self.cleanup_interval = cleanup_interval or settings.cleanup_interval
        self.completion_threshold = (
            settings.completion_threshold if completion_threshold is None else completion_threshold
        )
        self.default_template = default_template or settings.default_template
        self._clock = clock or utcnow
        self._sessions: Dict[str, Session] = {}
        self._sweeper: Optional["SessionSweeper"] = None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def create_session(
        self,
        template_name: Optional[str] = None,
        project_context: Optional[str] = None,
    ) -> Session:
        """Start a new Active session in the first phase."""
        session = Session(
            template_name=template_name or self.default_template,
            project_context=project_context,
            created_at=self._clock(),
        )
        if self._sessions.setdefault(session.id, session) is not session:
            raise SessionIdCollisionError(session.id)
        logger.info("Session created: %s (template %s)", session.id, session.template_name)
        return session

    def get_session(self, session_id: str) -> Session:
        """Fetch a session and record the access as activity.

        Raises:
            SessionNotFoundError: Unknown id
            SessionExpiredError: The session timed out
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        with session.lock:
            if session.status == SessionStatus.EXPIRED:
                raise SessionExpiredError(session_id)
            session.touch(self._clock())
        return session

    def try_get_session(self, session_id: str) -> Optional[Session]:
        """Non-throwing lookup for read-only paths.

        Expired sessions are reported as absent, and the lookup does not count
        as activity, so polling a finished session never extends its life.
        """
        session = self._sessions.get(session_id)
        if session is None or session.status == SessionStatus.EXPIRED:
            return None
        return session

    def list_active(self) -> List[SessionSummary]:
        """Active sessions, most recently active first."""
        summaries = [s.summary() for s in list(self._sessions.values())]
        active = [s for s in summaries if s.status == SessionStatus.ACTIVE]
        return sorted(active, key=lambda s: s.last_activity, reverse=True)

    def session_count(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def add_user_message(self, session_id: str, text: str) -> Message:
        """Append a user message. Only Active sessions accept them."""
        session = self.get_session(session_id)
        with session.lock:
            if session.status != SessionStatus.ACTIVE:
                raise SessionNotActiveError(session_id, session.status)
            return session.add_message(MessageRole.USER, text, self._clock())

    def add_assistant_message(self, session_id: str, text: str) -> Message:
        """Append an assistant message regardless of status.

        The reply was generated against the state the session had when the
        turn began, so it is recorded even if the session was cancelled or
        marked while the model was answering. The lookup still goes through
        get_session, so a session that expired meanwhile raises
        SessionExpiredError and the reply is not recorded.
        """
        session = self.get_session(session_id)
        return session.add_message(MessageRole.ASSISTANT, text, self._clock())

    # ------------------------------------------------------------------
    # Extraction and phases
    # ------------------------------------------------------------------

    def apply_extraction_result(
        self,
        session_id: str,
        extracted: Mapping[str, str],
        template: Template,
        phase: Optional[Phase] = None,
    ) -> ExtractionOutcome:
        """Merge extracted fragments, apply a phase directive, and rescore.

        Args:
            session_id: Session to update
            extracted: Section key -> text from the latest reply
            template: Template used for scoring
            phase: Phase requested by the reply's directive, if any

        Returns:
            ExtractionOutcome with the new completion score, missing required
            sections, completeness flag and current phase
        """
        session = self.get_session(session_id)
        with session.lock:
            for key, value in extracted.items():
                if not value or not value.strip():
                    continue
                existing = session.extracted_data.get(key)
                session.extracted_data[key] = value if existing is None else merge_content(existing, value)

            changed = False
            if phase is not None and phase != session.phase:
                self._transition_phase(session, phase)
                changed = True

            estimate = estimate_session(session.extracted_data, session.phase, template)
            is_complete = (
                estimate.score >= self.completion_threshold
                and session.phase == PHASE_ORDER[-1]
            )
            return ExtractionOutcome(
                completion=estimate.score,
                missing_sections=estimate.missing_required,
                is_complete=is_complete,
                phase=session.phase,
                phase_changed=changed,
            )

    def apply_phase_transition(self, session_id: str, phase: Phase) -> Phase:
        """Move a session to any phase. Returns the phase now in effect."""
        session = self.get_session(session_id)
        with session.lock:
            if phase != session.phase:
                self._transition_phase(session, phase)
            return session.phase

    def _transition_phase(self, session: Session, phase: Phase) -> None:
        logger.info("Session %s phase: %s -> %s", session.id, session.phase.value, phase.value)
        session.phase = phase

    def build_preview(self, session: Session, template: Template) -> DocumentPreview:
        """Section-by-section view of the data gathered so far."""
        with session.lock:
            data = dict(session.extracted_data)
            phase = session.phase
        sections = {
            s.title: data.get(s.key, NOT_COVERED)
            for s in template.sections_in_order()
        }
        estimate = estimate_session(data, phase, template)
        return DocumentPreview(
            sections=sections,
            missing_sections=estimate.missing_required,
            completeness_score=estimate.score,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def cancel_session(self, session_id: str) -> None:
        """Cancel a session. Cancelling twice is allowed."""
        session = self.get_session(session_id)
        self._set_status(session, SessionStatus.CANCELLED)

    def mark_prd_generated(self, session_id: str) -> None:
        self._set_status(self.get_session(session_id), SessionStatus.PRD_GENERATED)

    def mark_submitted_to_jira(self, session_id: str) -> None:
        self._set_status(self.get_session(session_id), SessionStatus.SUBMITTED_TO_JIRA)

    def _set_status(self, session: Session, status: SessionStatus) -> None:
        with session.lock:
            if session.status != status:
                logger.info("Session %s status: %s -> %s", session.id, session.status.value, status.value)
            session.status = status

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        """Expire idle Active sessions and delete idle finished ones.

        Active sessions idle longer than the session timeout become Expired.
        Expired or Cancelled sessions idle longer than the removal window are
        deleted. Both windows are measured from last activity; a session that
        expires during this pass stays inspectable until the next one.

        Iterates over a snapshot of the collection and locks one session at a time.
        """
        now = now or self._clock()
        expire_before = now - self.session_timeout
        remove_before = now - self.removal_window
        report = SweepReport()

        for session_id, session in list(self._sessions.items()):
            with session.lock:
                if session.status == SessionStatus.ACTIVE:
                    if session.last_activity < expire_before:
                        session.status = SessionStatus.EXPIRED
                        report.expired.append(session_id)
                        logger.info("Session %s expired (idle since %s)", session_id, session.last_activity.isoformat())
                    continue
                if (
                    session.status in (SessionStatus.EXPIRED, SessionStatus.CANCELLED)
                    and session.last_activity < remove_before
                    and self._sessions.get(session_id) is session
                ):
                    self._sessions.pop(session_id, None)
                    report.removed.append(session_id)
                    logger.info("Session %s removed", session_id)
        return report

    def start_sweeper(self) -> "SessionSweeper":
        """Start the background sweeper if it is not already running."""
        if self._sweeper is None or not self._sweeper.running:
            self._sweeper = SessionSweeper(self, self.cleanup_interval.total_seconds())
            self._sweeper.start()
        return self._sweeper

    def close(self) -> None:
        """Stop the background sweeper."""
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None

    def __enter__(self) -> "ConversationManager":
        self.start_sweeper()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SessionSweeper:
    """Daemon thread that calls ConversationManager.sweep() on a fixed interval."""

    def __init__(self, manager: ConversationManager, interval_seconds: float):
        self.manager = manager
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="session-sweeper", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                report = self.manager.sweep()
            except Exception:
                logger.exception("Session sweep failed")
                continue
            if report.expired or report.removed:
                logger.info("Sweep: %d expired, %d removed", len(report.expired), len(report.removed))

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None


# Shared manager for the process
_manager: Optional[ConversationManager] = None


def get_conversation_manager() -> ConversationManager:
    """Get the shared conversation manager, creating one if needed."""
    global _manager
    if _manager is None:
        _manager = ConversationManager()
    return _manager


def reset_conversation_manager(**kwargs) -> ConversationManager:
    """Replace the shared manager (stopping the old one's sweeper)."""
    global _manager
    if _manager is not None:
        _manager.close()
    _manager = ConversationManager(**kwargs)
    return _manager
