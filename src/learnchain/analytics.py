"""
Aggregate stored generations and first attempts into a daily series.

The window is the inclusive range [today - (days - 1), today]; inactive days
are zero-filled so the series always has exactly `days` entries.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

DEFAULT_WINDOW_DAYS = 30


@dataclass(frozen=True)
class GenerationRow:
    session_date: date
    group_name: str
    question_count: int


@dataclass(frozen=True)
class AttemptRow:
    session_date: date
    correct: bool


@dataclass
class DailyAnalytics:
    date: date
    total_questions: int = 0
    first_try_correct: int = 0
    total_attempts: int = 0
    cumulative_groups: int = 0


@dataclass
class KnowledgeAnalytics:
    """Snapshot of a trailing window plus the all-time group catalog."""

    daily: list[DailyAnalytics] = field(default_factory=list)
    total_questions: int = 0
    total_first_try_correct: int = 0
    total_attempts: int = 0
    knowledge_groups: list[str] = field(default_factory=list)

    @property
    def first_try_rate(self) -> float:
        if not self.total_attempts:
            return 0.0
        return self.total_first_try_correct / self.total_attempts


def window_start(today: date, days: int) -> date:
    return today - timedelta(days=max(days, 1) - 1)


def build_analytics(
    generation_rows: Iterable[GenerationRow],
    attempt_rows: Iterable[AttemptRow],
    group_catalog: Iterable[str],
    today: date,
    days: int = DEFAULT_WINDOW_DAYS,
) -> KnowledgeAnalytics:
    days = max(days, 1)
    start = window_start(today, days)

    def in_window(day: date) -> bool:
        return start <= day <= today

    questions_by_day: dict[date, int] = defaultdict(int)
    groups_by_day: dict[date, set[str]] = defaultdict(set)
    for row in generation_rows:
        if not in_window(row.session_date):
            continue
        questions_by_day[row.session_date] += row.question_count
        groups_by_day[row.session_date].add(row.group_name)

    correct_by_day: dict[date, int] = defaultdict(int)
    attempts_by_day: dict[date, int] = defaultdict(int)
    for row in attempt_rows:
        if not in_window(row.session_date):
            continue
        correct_by_day[row.session_date] += int(row.correct)
        attempts_by_day[row.session_date] += 1

    daily = []
    seen_groups: set[str] = set()
    for offset in range(days):
        day = start + timedelta(days=offset)
        seen_groups |= groups_by_day.get(day, set())
        daily.append(
            DailyAnalytics(
                date=day,
                total_questions=questions_by_day.get(day, 0),
                first_try_correct=correct_by_day.get(day, 0),
                total_attempts=attempts_by_day.get(day, 0),
                cumulative_groups=len(seen_groups),
            )
        )

    return KnowledgeAnalytics(
        daily=daily,
        total_questions=sum(questions_by_day.values()),
        total_first_try_correct=sum(correct_by_day.values()),
        total_attempts=sum(attempts_by_day.values()),
        knowledge_groups=sorted(set(group_catalog)),
    )
