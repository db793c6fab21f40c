"""Terminal review screen: shows cards from a study session and reads grades."""

from typing import Callable, Optional

import typer

from ...engine.models import Card
from ...engine.scheduler import Grade
from ...engine.session import StudySession
from ...utils.formatting import format_time_until_due

QUIT_KEYS = ("q", "quit")
GRADE_PROMPT = "Grade: [1] Again  [2] Hard  [3] Good  [4] Easy  (q to quit)"


class ReviewScreen:
    """Runs one study session interactively."""

    def __init__(self, session: StudySession, clock: Optional[Callable[[], int]] = None):
        self.session = session
        self.clock = clock or session.clock
        self.reviewed = 0

    def show_card(self, card: Card) -> None:
        index, total = self.session.session_position()
        retry = " (retry)" if index >= self.session.initial_count else ""
        typer.echo("")
        typer.echo(f"[{index + 1}/{total}]{retry}")
        typer.secho(f"  {card.hanzi}", bold=True)

    def show_answer(self, card: Card) -> None:
        typer.echo(f"  {card.pinyin}")
        typer.echo(f"  {card.english}")

    def _ask_grade(self) -> Optional[Grade]:
        while True:
            answer = typer.prompt(GRADE_PROMPT)
            if answer.strip().lower() in QUIT_KEYS:
                return None
            try:
                return Grade.parse(answer)
            except ValueError:
                typer.echo(f"Unknown grade {answer!r}, try again.")

    def run(self) -> int:
        """Review until the session is complete or the user quits.

        Returns:
            Number of cards graded
        """
        if self.session.current_card() is None:
            typer.echo("No cards due. All caught up!")
            return 0

        while True:
            card = self.session.current_card()
            if card is None:
                typer.echo("")
                typer.secho(f"🎉 Review session complete! {self.reviewed} cards reviewed.", fg="green")
                break

            self.show_card(card)
            answer = typer.prompt("Press Enter to show the answer", default="", show_default=False)
            if answer.strip().lower() in QUIT_KEYS:
                break
            self.show_answer(card)

            grade = self._ask_grade()
            if grade is None:
                break

            graded = self.session.grade(grade, self.clock())
            self.reviewed += 1
            if graded.review.suspended:
                typer.secho("  Card suspended as a leech.", fg="yellow")
            else:
                typer.echo(f"  Next review: {format_time_until_due(graded.review.due, self.clock())}")

        self.session.stop()
        return self.reviewed
