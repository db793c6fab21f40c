"""Study session queue management.

A session snapshots the cards that are due (or every card, in review-all
mode) when it starts and walks through them in that fixed order. Cards
graded Again while still in a learning phase are appended after the
snapshot so they come back before the session ends.
"""

import logging
import random
import time
from typing import Callable, Dict, List, Optional, Protocol, Set, Tuple

from .models import Card, Learning, Relearning
from .scheduler import LEECH_THRESHOLD, Grade, is_leech, transition

logger = logging.getLogger(__name__)


class CardStore(Protocol):
    """Storage the session reads cards from and writes review results to."""

    def get_cards_in_deck(self, deck_id: str) -> List[Card]: ...

    def get_all_cards(self) -> List[Card]: ...

    def persist(self, card: Card) -> None: ...

    def log_review(self, card_id: str, grade: int, prev_phase: Optional[str],
                   prev_interval: int, next_interval: int,
                   ts: Optional[int] = None) -> None: ...


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class StudySession:
    """Queue of cards for one sitting, plus immediate retries of failures."""

    def __init__(self, store: CardStore, clock: Callable[[], int] = system_clock,
                 rng: Callable[[], float] = random.random,
                 leech_threshold: int = LEECH_THRESHOLD):
        """
        Args:
            store: Card store to read from and persist graded cards to
            clock: Returns the current time in epoch milliseconds
            rng: Uniform [0, 1) source for review-interval jitter
            leech_threshold: Lapses after which a card is suspended
        """
        self.store = store
        self.clock = clock
        self.rng = rng
        self.leech_threshold = leech_threshold

        self.deck_id: Optional[str] = None
        self.review_all = False
        self.is_active = False
        self.base_queue: List[str] = []
        self.requeued: List[str] = []
        self.reviewed_requeued: Set[str] = set()
        self.cursor = 0
        self._cards: Dict[str, Card] = {}

    def _cards_in_scope(self, deck_id: Optional[str]) -> List[Card]:
        if deck_id:
            return self.store.get_cards_in_deck(deck_id)
        return self.store.get_all_cards()

    def start(self, deck_id: Optional[str] = None, review_all: bool = False,
              now_ts: Optional[int] = None) -> None:
        """Begin a session over one deck (or every card when deck_id is None).

        Args:
            deck_id: Deck to study, or None for all cards
            review_all: Include every non-suspended card, not just due ones
            now_ts: Time used for the due check (defaults to the clock)
        """
        if now_ts is None:
            now_ts = self.clock()

        cards = self._cards_in_scope(deck_id)
        if review_all:
            selected = [c for c in cards if not c.review.suspended]
        else:
            selected = [c for c in cards if c.is_due(now_ts)]

        self.deck_id = deck_id
        self.review_all = review_all
        self.is_active = True
        self._cards = {c.id: c for c in selected}
        self.base_queue = [c.id for c in selected]
        self.requeued = []
        self.reviewed_requeued = set()
        self.cursor = 0

        logger.debug("Started session deck=%s review_all=%s with %d cards",
                     deck_id, review_all, len(self.base_queue))

    def stop(self) -> None:
        """Abandon the session. Grades already given stay persisted."""
        if self.is_active:
            logger.debug("Stopped session at %d of %d", self.cursor, self.total_session_count)
        self.deck_id = None
        self.review_all = False
        self.is_active = False
        self.base_queue = []
        self.requeued = []
        self.reviewed_requeued = set()
        self.cursor = 0
        self._cards = {}

    @property
    def queue(self) -> List[str]:
        """Snapshot order followed by retries in the order they failed."""
        return self.base_queue + self.requeued

    @property
    def total_session_count(self) -> int:
        return len(self.base_queue) + len(self.requeued)

    @property
    def initial_count(self) -> int:
        return len(self.base_queue)

    @property
    def remaining_count(self) -> int:
        return max(0, self.total_session_count - self.cursor)

    @property
    def is_finished(self) -> bool:
        return self.current_card() is None

    def session_position(self) -> Tuple[int, int]:
        """(index of the current card, total cards in the session so far)."""
        total = self.total_session_count
        return min(self.cursor, total), total

    def due_count(self, now_ts: Optional[int] = None) -> int:
        """Cards due right now in the session's scope, read live from the store."""
        if now_ts is None:
            now_ts = self.clock()
        return sum(1 for c in self._cards_in_scope(self.deck_id) if c.is_due(now_ts))

    def current_card(self) -> Optional[Card]:
        """The card to show next, or None once the session is complete."""
        if not self.is_active:
            return None
        queue = self.queue
        if self.cursor >= len(queue):
            return None
        return self._cards[queue[self.cursor]]

    def grade(self, grade: Grade, now_ts: Optional[int] = None) -> Optional[Card]:
        """Grade the current card, persist it and move to the next one.

        Returns:
            The graded card, or None when there was no current card
        """
        card = self.current_card()
        if card is None:
            return None
        if now_ts is None:
            now_ts = self.clock()

        previous = card.review
        review = transition(previous, grade, now_ts, self.rng)
        if not review.suspended and is_leech(review, self.leech_threshold):
            logger.info("Card %s reached %d lapses, suspending as leech", card.id, review.lapses)
            review = review.with_changes(suspended=True)

        card.review = review
        self.store.persist(card)
        self.store.log_review(card.id, grade, previous.phase_name,
                              previous.interval_days, review.interval_days, now_ts)

        if self.cursor >= len(self.base_queue):
            self.reviewed_requeued.add(card.id)

        if (grade == Grade.AGAIN and not review.suspended
                and isinstance(review.phase, (Learning, Relearning))):
            self.requeued.append(card.id)

        self.cursor += 1
        if self.current_card() is None:
            logger.debug("Session complete after %d reviews", self.cursor)
        return card
