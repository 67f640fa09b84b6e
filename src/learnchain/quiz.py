"""
Quiz navigation over a generated knowledge tree.

The cursor walks groups, questions and options. Every index is clamped after
each mutation, so partial or empty trees degrade to "no content" rather than
raising.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .knowledge import KnowledgeGroup, LearningResponse, QuizItem

logger = logging.getLogger(__name__)

NO_OPTIONS_FEEDBACK = "No answer options available for this question."
INCORRECT_FEEDBACK = "Not quite. Try another option."


def option_label(index: int) -> str:
    """Letter shown for an option: A, B, ... wrapping after Z."""
    return chr(ord("A") + index % 26)


def correct_feedback(index: int) -> str:
    return f"Correct! Option {option_label(index)} is the right answer."


class QuizAction(Enum):
    NEXT_GROUP = "next_group"
    PREVIOUS_GROUP = "previous_group"
    NEXT_QUESTION = "next_question"
    PREVIOUS_QUESTION = "previous_question"
    NEXT_OPTION = "next_option"
    PREVIOUS_OPTION = "previous_option"
    SELECT = "select"


@dataclass
class QuizCursor:
    group_index: int = 0
    question_index: int = 0
    option_index: int = 0
    feedback: Optional[str] = None
    summary_revealed: bool = False
    awaiting_advance: bool = False

    def clear_feedback(self) -> None:
        self.feedback = None
        self.summary_revealed = False
        self.awaiting_advance = False


@dataclass(frozen=True)
class QuizAttempt:
    """Outcome of one evaluated selection."""

    group_name: str
    language: str
    question: str
    correct: bool


class QuizState:
    """Cursor plus the tree it points into."""

    def __init__(self, response: Optional[LearningResponse] = None):
        self.response = response
        self.cursor = QuizCursor()

    def load(self, response: Optional[LearningResponse]) -> None:
        """Replace the tree and reset the cursor."""
        self.response = response
        self.cursor = QuizCursor()
        logger.debug("Loaded quiz with %d group(s)", len(self._groups))

    @property
    def _groups(self) -> list[KnowledgeGroup]:
        return self.response.groups if self.response is not None else []

    def current_group(self) -> Optional[KnowledgeGroup]:
        groups = self._groups
        if 0 <= self.cursor.group_index < len(groups):
            return groups[self.cursor.group_index]
        return None

    def current_question(self) -> Optional[QuizItem]:
        group = self.current_group()
        if group is not None and 0 <= self.cursor.question_index < len(group.quiz):
            return group.quiz[self.cursor.question_index]
        return None

    def _question_count(self, group_index: int) -> int:
        return len(self._groups[group_index].quiz)

    def _option_count(self) -> int:
        question = self.current_question()
        return len(question.options) if question is not None else 0

    def _clamp(self) -> None:
        """Pull every index back into range, 0 for empty levels."""
        cursor = self.cursor
        before = (cursor.group_index, cursor.question_index, cursor.option_index)

        groups = self._groups
        if not 0 <= cursor.group_index < len(groups):
            cursor.group_index = 0
        question_count = self._question_count(cursor.group_index) if groups else 0
        if not 0 <= cursor.question_index < question_count:
            cursor.question_index = 0
        if not 0 <= cursor.option_index < self._option_count():
            cursor.option_index = 0

        if (cursor.group_index, cursor.question_index, cursor.option_index) != before:
            cursor.clear_feedback()

    # Groups

    def _step_group(self, step: int) -> None:
        total = len(self._groups)
        if total == 0:
            return
        self.cursor.group_index = (self.cursor.group_index + step) % total
        self.cursor.question_index = 0
        self.cursor.option_index = 0
        self.cursor.clear_feedback()
        logger.debug("Moved to group %d of %d", self.cursor.group_index + 1, total)
        self._clamp()

    def next_group(self) -> None:
        self._step_group(1)

    def previous_group(self) -> None:
        self._step_group(-1)

    # Questions

    def _find_group_with_questions(self, step: int) -> Optional[int]:
        """Search at most one full lap of groups, starting one step away."""
        total = len(self._groups)
        for offset in range(1, total + 1):
            index = (self.cursor.group_index + step * offset) % total
            if self._question_count(index) > 0:
                return index
        return None

    def next_question(self) -> None:
        cursor = self.cursor
        group = self.current_group()
        if group is not None and cursor.question_index + 1 < len(group.quiz):
            cursor.question_index += 1
            cursor.option_index = 0
            cursor.clear_feedback()
            self._clamp()
            return

        index = self._find_group_with_questions(1)
        cursor.clear_feedback()
        if index is not None:
            cursor.group_index = index
            cursor.question_index = 0
            cursor.option_index = 0
            logger.debug("Advanced to group %d", index + 1)
        self._clamp()

    def previous_question(self) -> None:
        cursor = self.cursor
        if self.current_group() is not None and cursor.question_index > 0:
            cursor.question_index -= 1
            cursor.option_index = 0
            cursor.clear_feedback()
            self._clamp()
            return

        index = self._find_group_with_questions(-1)
        cursor.clear_feedback()
        if index is not None:
            cursor.group_index = index
            cursor.question_index = self._question_count(index) - 1
            cursor.option_index = 0
            logger.debug("Rewound to group %d", index + 1)
        self._clamp()

    # Options

    def _step_option(self, step: int) -> None:
        total = self._option_count()
        if total == 0:
            return
        self.cursor.option_index = (self.cursor.option_index + step) % total
        self.cursor.clear_feedback()
        self._clamp()

    def next_option(self) -> None:
        self._step_option(1)

    def previous_option(self) -> None:
        self._step_option(-1)

    def select_option(self) -> Optional[QuizAttempt]:
        """Evaluate the highlighted option.

        Returns:
            The attempt to record, or None when nothing could be evaluated
        """
        group = self.current_group()
        question = self.current_question()
        if group is None or question is None:
            return None

        cursor = self.cursor
        if not question.options:
            cursor.feedback = NO_OPTIONS_FEEDBACK
            cursor.summary_revealed = False
            cursor.awaiting_advance = False
            return None

        index = min(cursor.option_index, len(question.options) - 1)
        correct = question.options[index].is_correct
        if correct:
            cursor.feedback = correct_feedback(index)
            cursor.summary_revealed = True
            cursor.awaiting_advance = True
        else:
            cursor.feedback = INCORRECT_FEEDBACK
            cursor.summary_revealed = False
            cursor.awaiting_advance = False
        logger.debug("Evaluated option %s (correct: %s)", option_label(index), correct)

        return QuizAttempt(
            group_name=group.group_name,
            language=group.language,
            question=question.question,
            correct=correct,
        )

    def handle(self, action: QuizAction) -> Optional[QuizAttempt]:
        """Apply a user action; after a correct answer any action advances."""
        if self.cursor.awaiting_advance:
            self.cursor.awaiting_advance = False
            self.next_question()
            return None

        if action is QuizAction.SELECT:
            return self.select_option()
        handlers = {
            QuizAction.NEXT_GROUP: self.next_group,
            QuizAction.PREVIOUS_GROUP: self.previous_group,
            QuizAction.NEXT_QUESTION: self.next_question,
            QuizAction.PREVIOUS_QUESTION: self.previous_question,
            QuizAction.NEXT_OPTION: self.next_option,
            QuizAction.PREVIOUS_OPTION: self.previous_option,
        }
        handlers[action]()
        return None


def shuffle_options(response: LearningResponse, rng: Optional[random.Random] = None) -> None:
    """Shuffle every question's options in place."""
    rng = rng or random.Random()
    for group in response.groups:
        for item in group.quiz:
            rng.shuffle(item.options)
