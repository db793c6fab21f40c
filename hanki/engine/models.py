"""Card and review-state models for Hanki."""

import logging
from dataclasses import dataclass, field, replace
from typing import ClassVar, Optional, Union

logger = logging.getLogger(__name__)

STARTING_EASE = 2.5


@dataclass(frozen=True)
class Learning:
    """New card climbing the learning ladder."""
    tag: ClassVar[str] = "learning"
    step_index: int = 0


@dataclass(frozen=True)
class Graduating:
    """One probation review confirming the graduation interval held."""
    tag: ClassVar[str] = "graduating"


@dataclass(frozen=True)
class Review:
    """Long-interval review scheduling."""
    tag: ClassVar[str] = "review"


@dataclass(frozen=True)
class Relearning:
    """Lapsed review card going back through the short steps."""
    tag: ClassVar[str] = "relearning"
    step_index: int = 0


Phase = Union[Learning, Graduating, Review, Relearning]

_STEPPED = {Learning.tag: Learning, Relearning.tag: Relearning}
_UNSTEPPED = {Graduating.tag: Graduating, Review.tag: Review}


def phase_to_record(phase: Optional[Phase]) -> tuple[Optional[str], Optional[int]]:
    """Split a phase into the (tag, step_index) pair stored on disk."""
    if phase is None:
        return None, None
    return phase.tag, getattr(phase, "step_index", None)


def phase_from_record(tag: Optional[str], step_index: Optional[int]) -> Optional[Phase]:
    """Rebuild a phase from its stored (tag, step_index) pair.

    Unknown tags come back as None so the scheduler fallback can deal with
    them. A stepped phase with a missing or negative step restarts at 0.
    """
    if tag in _STEPPED:
        if step_index is None or step_index < 0:
            logger.warning("Phase %r stored with invalid step index %r, using 0", tag, step_index)
            step_index = 0
        return _STEPPED[tag](step_index=int(step_index))
    if tag in _UNSTEPPED:
        return _UNSTEPPED[tag]()
    logger.warning("Unrecognized phase %r in stored review state", tag)
    return None


@dataclass(frozen=True)
class ReviewState:
    """Scheduling fields carried by every card.

    `due` is an epoch timestamp in milliseconds. `phase` is None only when
    the stored phase could not be recognized.
    """
    ease_factor: float = STARTING_EASE
    interval_days: int = 0
    repetitions: int = 0
    lapses: int = 0
    due: int = 0
    phase: Optional[Phase] = field(default_factory=Learning)
    suspended: bool = False

    @property
    def step_index(self) -> Optional[int]:
        return getattr(self.phase, "step_index", None)

    @property
    def phase_name(self) -> str:
        return self.phase.tag if self.phase is not None else "unknown"

    def is_due(self, now_ms: int) -> bool:
        return not self.suspended and self.due <= now_ms

    def with_changes(self, **changes) -> "ReviewState":
        return replace(self, **changes)


def initial_state(now_ms: int) -> ReviewState:
    """Review state for a freshly created card: learning step 0, due now."""
    return ReviewState(due=now_ms)


@dataclass
class Card:
    """A hanzi / pinyin / english flashcard with its review state."""
    id: str
    hanzi: str
    pinyin: str
    english: str
    review: ReviewState
    created_at: int = 0
    updated_at: int = 0

    def is_due(self, now_ms: int) -> bool:
        return self.review.is_due(now_ms)
