"""
SRS SM-2 Algorithm Implementation
Calculates the next review state from the current state and a 0-5 grade
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ...domain.errors import ValidationError
from ...domain.review_state import DEFAULT_EASE_FACTOR, ReviewState, utcnow

MIN_GRADE = 0
MAX_GRADE = 5
PASSING_GRADE = 3


@dataclass(frozen=True)
class SM2Policy:
    """Tunable SM-2 constants."""

    default_ease_factor: float = DEFAULT_EASE_FACTOR
    min_ease_factor: float = 1.3
    first_interval_days: int = 1
    second_interval_days: int = 6
    max_interval_days: Optional[int] = None


DEFAULT_POLICY = SM2Policy()


def validate_grade(grade: object) -> int:
    """Return *grade* if it is an integer in [0, 5], else raise ValidationError."""
    # bool is an int subclass; True/False are not grades
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise ValidationError(f"Grade must be an integer 0-5, got {grade!r}")
    if not MIN_GRADE <= grade <= MAX_GRADE:
        raise ValidationError(f"Grade must be between 0 and 5, got {grade}")
    return grade


def ease_factor_delta(grade: int) -> float:
    """EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02))"""
    miss = MAX_GRADE - grade
    return 0.1 - miss * (0.08 + miss * 0.02)


def round_half_up(value: float) -> int:
    # Built-in round() is banker's rounding and would turn 2.5 into 2
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_next_review(
    grade: int,
    ease_factor: float,
    interval: int,
    repetitions: int,
    policy: SM2Policy = DEFAULT_POLICY,
):
    """
    Calculate next review using SM-2 algorithm.

    Args:
        grade: 0-2 = lapse, 3-5 = successful recall
        ease_factor: Current ease factor (min 1.3)
        interval: Current interval in days
        repetitions: Number of successful repetitions

    Returns:
        (new_interval, new_ease_factor, new_repetitions)
    """
    grade = validate_grade(grade)

    if grade < PASSING_GRADE:
        new_interval = policy.first_interval_days
        new_repetitions = 0
    else:
        if repetitions == 0:
            new_interval = policy.first_interval_days
        elif repetitions == 1:
            new_interval = policy.second_interval_days
        else:
            new_interval = round_half_up(interval * ease_factor)
        new_repetitions = repetitions + 1

    if policy.max_interval_days is not None:
        new_interval = min(new_interval, policy.max_interval_days)

    new_ease_factor = max(policy.min_ease_factor, ease_factor + ease_factor_delta(grade))

    return new_interval, new_ease_factor, new_repetitions


def compute_next(
    state: ReviewState,
    grade: int,
    now: Optional[datetime] = None,
    policy: SM2Policy = DEFAULT_POLICY,
) -> ReviewState:
    """Apply one graded review to *state* and return the resulting state.

    Pure: no I/O, and the same inputs (including *now*) always give the same
    output. ``suspended`` and identity fields are carried over unchanged.
    """
    now = now or utcnow()
    new_interval, new_ease_factor, new_repetitions = calculate_next_review(
        grade,
        state.ease_factor,
        state.interval_days,
        state.repetitions,
        policy,
    )
    lapses = state.lapses + 1 if grade < PASSING_GRADE else state.lapses

    return replace(
        state,
        ease_factor=new_ease_factor,
        interval_days=new_interval,
        repetitions=new_repetitions,
        lapses=lapses,
        next_review_at=now + timedelta(days=new_interval),
        last_reviewed_at=now,
        last_grade=grade,
    )
