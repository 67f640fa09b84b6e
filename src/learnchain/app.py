"""
Application controller.

Holds the loaded session, the summary, the quiz and the background
generation task. Everything runs on the caller's thread except the
generation itself.
"""

import logging
from datetime import datetime
from typing import Optional

from .analytics import KnowledgeAnalytics
from .config import AppConfig
from .generation import GenerationOutcome, GenerationTask, LearningGenerator, write_learning_response
from .inclusion import InclusionRules
from .knowledge import LearningResponse
from .quiz import QuizAction, QuizAttempt, QuizState, shuffle_options
from .session_loader import SessionLoad, SessionLoader
from .store import AttemptStore
from .summary import SummaryArtifact, write_summary
from .utils.errors import ErrorLog, StoreError

logger = logging.getLogger(__name__)

STATUS_SEPARATOR = " • "


class LearnChainApp:
    """Ties loading, generation, quiz and history together for the CLI."""

    def __init__(
        self,
        config: AppConfig,
        store: Optional[AttemptStore] = None,
        generator: Optional[LearningGenerator] = None,
    ):
        self.config = config
        self.rules = InclusionRules(max_events=config.max_events)
        self.loader = SessionLoader.from_config(config)
        self.store = store or AttemptStore(config.database_path)
        self.generator = generator or LearningGenerator.from_config(config)
        self.task = GenerationTask(self.generator)
        self.quiz = QuizState()
        self.errors = ErrorLog()
        self.status: Optional[str] = None
        self.session: Optional[SessionLoad] = None
        self.summary: Optional[SummaryArtifact] = None

    @property
    def session_date(self) -> str:
        if self.session is not None:
            return self.session.session_date
        return datetime.now().strftime("%Y-%m-%d")

    @property
    def generating(self) -> bool:
        return self.task.running

    def load_session(self, now: Optional[datetime] = None) -> SessionLoad:
        """Load today's events and render the summary."""
        self.session = self.loader.load(now)
        self.errors.push(self.session.error)
        self.summary = write_summary(
            self.session.events,
            self.session.session_date,
            self.rules,
            self.config.output_dir,
            latest_file=self.session.latest_file,
            persist=self.config.write_output_artifacts,
        )
        self.errors.push(self.summary.error)
        logger.debug(
            "Loaded %d event(s) from %s for %s",
            len(self.session.events),
            self.session.source,
            self.session.session_date,
        )
        return self.session

    def start_generation(self) -> bool:
        """Kick off a background generation from the current summary."""
        if self.task.running:
            logger.debug("Generation already in progress")
            return False
        if (
            self.session is None
            or self.summary is None
            or not self.rules.select_events(self.session.events)
        ):
            self.errors.push("No session events available to generate a learning response")
            return False
        started = self.task.start(self.summary.content)
        if started:
            self.status = "Generating learning response…"
        return started

    def poll_generation(self) -> bool:
        """Apply a finished generation, if any. Returns True when one was applied."""
        outcome = self.task.poll()
        if outcome is None:
            return False
        if outcome.ok:
            self._apply_response(outcome)
        else:
            message = (outcome.error or "").strip()
            self.errors.push(f"AI generation failed: {message}")
            self.status = "AI generation failed"
            logger.warning("AI generation failed: %s", message)
        return True

    def _apply_response(self, outcome: GenerationOutcome) -> None:
        response: LearningResponse = outcome.response  # type: ignore[assignment]
        shuffle_options(response)
        parts = []

        if self.config.write_output_artifacts:
            try:
                path = write_learning_response(self.config.output_dir, self.session_date, response)
            except OSError as e:
                self.errors.push(f"Failed to save learning response: {e}")
                parts.append("Failed to save learning response")
            else:
                parts.append(f"Saved to {path}")

        try:
            self.store.record_generation(self.session_date, response)
        except StoreError as e:
            logger.warning("Failed to record learning response: %s", e)
            self.errors.push(f"Failed to record learning response: {e}")

        parts.append(f"Knowledge groups: {len(response.groups)}")
        parts.append(f"Total quiz questions: {response.total_questions}")
        self.status = STATUS_SEPARATOR.join(parts)
        self.quiz.load(response)

    def handle_quiz_action(self, action: QuizAction) -> Optional[QuizAttempt]:
        attempt = self.quiz.handle(action)
        if attempt is None:
            return None
        try:
            self.store.record_first_attempt(
                self.session_date,
                attempt.group_name,
                attempt.language or None,
                attempt.question,
                attempt.correct,
            )
        except StoreError as e:
            logger.warning("Failed to record quiz attempt: %s", e)
            self.errors.push(f"Failed to record quiz attempt: {e}")
        return attempt

    def analytics(self, days: Optional[int] = None) -> KnowledgeAnalytics:
        """Load the analytics window.

        Raises:
            StoreError: If the history database cannot be read
        """
        return self.store.load_window(days or self.config.analytics_days)
