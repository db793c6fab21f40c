"""SM-2 derived review scheduler.

`transition` is the only place a card's review state changes. It is pure:
the current time and the random source for interval jitter are passed in.
"""

import logging
import math
import random
from enum import IntEnum
from typing import Callable, Optional

from .models import Graduating, Learning, Relearning, Review, ReviewState

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000
DAY_MS = 24 * 60 * MINUTE_MS

# Scheduling configuration
LEARNING_STEPS_MS = [1 * MINUTE_MS, 10 * MINUTE_MS, 1 * DAY_MS]
HARD_STEP_MINUTES = [1.5, 3, 5]       # Progressive Hard delays while learning
HARD_STEP_CAP_MS = 6 * MINUTE_MS - 1  # Learning Hard always stays under 6 minutes
GRADUATING_INTERVAL_GOOD = 1          # Days when graduating with Good
GRADUATING_INTERVAL_EASY = 4          # Days when graduating with Easy
MINIMUM_EASE = 1.3
HARD_MULTIPLIER = 1.2
EASY_BONUS = 1.3
EASY_EASE_BONUS = 0.15
JITTER_FRACTION = 0.05
RELEARNING_INTERVAL = 1               # Days after a relearning card passes
LEECH_THRESHOLD = 8


class Grade(IntEnum):
    """Four-button grade, ordered worst to best."""
    AGAIN = 1   # Complete failure
    HARD = 2    # Recalled with difficulty
    GOOD = 3    # Recalled with normal effort
    EASY = 4    # Effortless recall

    @property
    def quality(self) -> int:
        """SM-2 quality score used by the ease update."""
        return _QUALITY[self]

    @classmethod
    def parse(cls, value: str) -> "Grade":
        """Parse a grade from its name, first letter or button number."""
        key = str(value).strip().lower()
        for grade in cls:
            if key in (grade.name.lower(), grade.name[0].lower(), str(grade.value)):
                return grade
        raise ValueError(f"Unknown grade: {value!r}")


_QUALITY = {Grade.AGAIN: 0, Grade.HARD: 3, Grade.GOOD: 4, Grade.EASY: 5}


def update_ease(ease_factor: float, grade: Grade) -> float:
    """Classic SM-2 ease update, floored at MINIMUM_EASE."""
    q = grade.quality
    return max(MINIMUM_EASE, ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _grow(interval_days: int, factor: float) -> int:
    return max(1, math.ceil(interval_days * factor))


def transition(state: ReviewState, grade: Grade, now_ms: int,
               rng: Optional[Callable[[], float]] = None) -> ReviewState:
    """Return the review state that follows grading `state` at `now_ms`.

    Args:
        state: Current review state of the card
        grade: Grade given by the user
        now_ms: Time of the review in epoch milliseconds
        rng: Uniform [0, 1) source used for review-interval jitter
             (defaults to random.random)

    Returns:
        The new review state. The input is never modified.
    """
    if rng is None:
        rng = random.random

    ease = update_ease(state.ease_factor, grade)
    phase = state.phase

    if isinstance(phase, Learning):
        return _learning(state, phase.step_index, grade, ease, now_ms)
    if isinstance(phase, Graduating):
        return _graduating(state, grade, ease, now_ms)
    if isinstance(phase, Review):
        return _review(state, grade, ease, now_ms, rng)
    if isinstance(phase, Relearning):
        return _relearning(state, phase.step_index, grade, ease, now_ms)

    logger.warning("Review state with unrecognized phase %r, restarting at learning step 0", phase)
    return state.with_changes(
        ease_factor=ease,
        phase=Learning(0),
        due=now_ms + LEARNING_STEPS_MS[0],
    )


def _learning(state: ReviewState, step_index: int, grade: Grade,
              ease: float, now_ms: int) -> ReviewState:
    if grade == Grade.AGAIN:
        return state.with_changes(
            ease_factor=ease,
            phase=Learning(0),
            due=now_ms + LEARNING_STEPS_MS[0],
        )

    if grade == Grade.HARD:
        # repetitions counts Hard presses on this step
        presses = min(state.repetitions, len(HARD_STEP_MINUTES) - 1)
        hard_ms = min(int(HARD_STEP_MINUTES[presses] * MINUTE_MS), HARD_STEP_CAP_MS)
        return state.with_changes(
            ease_factor=ease,
            repetitions=state.repetitions + 1,
            phase=Learning(step_index),
            due=now_ms + hard_ms,
        )

    if grade == Grade.GOOD and step_index + 1 < len(LEARNING_STEPS_MS):
        return state.with_changes(
            ease_factor=ease,
            phase=Learning(step_index + 1),
            due=now_ms + LEARNING_STEPS_MS[step_index + 1],
        )

    interval = GRADUATING_INTERVAL_GOOD if grade == Grade.GOOD else GRADUATING_INTERVAL_EASY
    return state.with_changes(
        ease_factor=ease,
        interval_days=interval,
        repetitions=1,
        phase=Graduating(),
        due=now_ms + interval * DAY_MS,
    )


def _graduating(state: ReviewState, grade: Grade, ease: float, now_ms: int) -> ReviewState:
    if grade == Grade.AGAIN:
        return state.with_changes(
            ease_factor=ease,
            interval_days=0,
            repetitions=0,
            lapses=state.lapses + 1,
            phase=Learning(0),
            due=now_ms + LEARNING_STEPS_MS[0],
        )

    if grade == Grade.HARD:
        interval = _grow(state.interval_days, HARD_MULTIPLIER)
        phase = Graduating()
    elif grade == Grade.GOOD:
        interval = GRADUATING_INTERVAL_GOOD
        phase = Review()
    else:
        interval = _grow(state.interval_days, ease * EASY_BONUS)
        phase = Review()

    return state.with_changes(
        ease_factor=ease,
        interval_days=interval,
        phase=phase,
        due=now_ms + interval * DAY_MS,
    )


def _review(state: ReviewState, grade: Grade, ease: float, now_ms: int,
            rng: Callable[[], float]) -> ReviewState:
    if grade == Grade.AGAIN:
        return state.with_changes(
            ease_factor=ease,
            lapses=state.lapses + 1,
            phase=Relearning(0),
            due=now_ms + LEARNING_STEPS_MS[0],
        )

    if grade == Grade.HARD:
        interval = _grow(state.interval_days, HARD_MULTIPLIER)
    elif grade == Grade.GOOD:
        interval = _grow(state.interval_days, ease)
    else:
        ease += EASY_EASE_BONUS
        interval = _grow(state.interval_days, ease * EASY_BONUS)

    # Spread cards that would otherwise land on the same day
    jitter = max(0, _round_half_up(interval * JITTER_FRACTION * rng()))
    return state.with_changes(
        ease_factor=ease,
        interval_days=interval,
        repetitions=state.repetitions + 1,
        phase=Review(),
        due=now_ms + (interval + jitter) * DAY_MS,
    )


def _relearning(state: ReviewState, step_index: int, grade: Grade,
                ease: float, now_ms: int) -> ReviewState:
    if grade == Grade.AGAIN:
        return state.with_changes(
            ease_factor=ease,
            phase=Relearning(0),
            due=now_ms + LEARNING_STEPS_MS[0],
        )

    if grade == Grade.HARD:
        hard_ms = max(MINUTE_MS, int(LEARNING_STEPS_MS[0] * HARD_MULTIPLIER))
        return state.with_changes(
            ease_factor=ease,
            phase=Relearning(step_index),
            due=now_ms + hard_ms,
        )

    # Passing relearning restarts from a fixed safety interval
    return state.with_changes(
        ease_factor=ease,
        interval_days=RELEARNING_INTERVAL,
        phase=Review(),
        due=now_ms + RELEARNING_INTERVAL * DAY_MS,
    )


def is_leech(state: ReviewState, threshold: int = LEECH_THRESHOLD) -> bool:
    """True once a card has lapsed `threshold` times."""
    return state.lapses >= threshold
