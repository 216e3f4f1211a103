"""
Moteur de session d'étude (une "séance" sur un deck).

Instancié par session côté client avec les cartes chargées au démarrage,
il gère l'ordre des cartes, le recto/verso, le résultat par carte et la
progression. Le passage à l'état terminé déclenche une seule fois
`on_complete(tally)` par génération (start/shuffle/restart ouvrent une
nouvelle génération).
"""
from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from flashdeck.core.errors import EmptyDeckError, PrematureAnswerError, SessionCompleteError
from flashdeck.services.scoring import accuracy_percentage

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    correct = "correct"
    incorrect = "incorrect"


@dataclass(frozen=True)
class Tally:
    correct_count: int
    incorrect_count: int
    total_cards: int
    accuracy_percentage: int

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _card_id(card: Any) -> str:
    if isinstance(card, dict):
        return str(card["id"])
    return str(card.id)


class StudySessionEngine:
    """
    Machine à états InProgress -> Complete (restart revient à InProgress).
    Mono-thread, aucune E/S sauf le callback de fin.
    """

    def __init__(
        self,
        cards: Sequence[Any],
        on_complete: Optional[Callable[[Tally], Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._on_complete = on_complete
        self._rng = rng or random.Random()
        self.generation = 0
        self.completion_warning: Optional[str] = None
        self.completion_result: Any = None
        self.start(cards)

    # ---------- public API ----------

    def start(self, cards: Sequence[Any]) -> None:
        if not cards:
            raise EmptyDeckError()
        self._cards: List[Any] = list(cards)
        self._reset_progress()

    @property
    def cards(self) -> List[Any]:
        return list(self._cards)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_card(self) -> Any:
        return self._cards[self._index]

    @property
    def is_revealed(self) -> bool:
        return self._revealed

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def is_last(self) -> bool:
        return self._index == len(self._cards) - 1

    def outcome_for(self, card_id: str) -> Optional[Outcome]:
        return self._outcomes.get(str(card_id))

    def shuffle(self) -> None:
        """
        Nouvel ordre aléatoire uniforme (Fisher-Yates via Random.shuffle);
        les résultats en cours sont perdus.
        """
        self._ensure_in_progress()
        self._rng.shuffle(self._cards)
        self._reset_progress()

    def reveal(self) -> None:
        self._revealed = True

    def hide(self) -> None:
        self._revealed = False

    def flip(self) -> None:
        self._revealed = not self._revealed

    def record_outcome(self, outcome: Outcome) -> None:
        self._ensure_in_progress()
        if not self._revealed:
            raise PrematureAnswerError()
        self._outcomes[_card_id(self.current_card)] = Outcome(outcome)
        self._advance()

    def mark_correct(self) -> None:
        self.record_outcome(Outcome.correct)

    def mark_incorrect(self) -> None:
        self.record_outcome(Outcome.incorrect)

    def go_to_previous(self) -> None:
        if self._complete or self._index == 0:
            return
        self._index -= 1
        self._revealed = False

    def go_to_next(self) -> None:
        """
        Passe la carte sans la noter. Sur la dernière carte: fin de session.
        """
        self._ensure_in_progress()
        self._advance()

    def restart(self) -> None:
        # garde l'ordre courant
        self._reset_progress()

    def progress(self) -> float:
        return (self._index + 1) / len(self._cards)

    def tally(self) -> Tally:
        correct = sum(1 for o in self._outcomes.values() if o is Outcome.correct)
        incorrect = sum(1 for o in self._outcomes.values() if o is Outcome.incorrect)
        total = len(self._cards)
        return Tally(
            correct_count=correct,
            incorrect_count=incorrect,
            total_cards=total,
            accuracy_percentage=accuracy_percentage(correct, total),
        )

    # ---------- internals ----------

    def _reset_progress(self) -> None:
        self._index = 0
        self._revealed = False
        self._complete = False
        self._outcomes: Dict[str, Outcome] = {}
        self.generation += 1
        self._completed_generation: Optional[int] = None
        self.completion_warning = None
        self.completion_result = None

    def _ensure_in_progress(self) -> None:
        if self._complete:
            raise SessionCompleteError()

    def _advance(self) -> None:
        if self.is_last:
            self._complete = True
            self._revealed = False
            self._fire_completion()
            return
        self._index += 1
        self._revealed = False

    def _fire_completion(self) -> None:
        if self._completed_generation == self.generation:
            return
        self._completed_generation = self.generation

        if self._on_complete is None:
            return

        tally = self.tally()
        try:
            result = self._on_complete(tally)
        except Exception as e:
            # pas de retry ni de rollback: l'UI affiche juste un avertissement
            logger.warning("Failed to save study session: %s", e)
            self.completion_warning = str(e) or e.__class__.__name__
            return

        self.completion_result = result
        if getattr(result, "success", True) is False:
            logger.warning("Failed to save study session: %s", getattr(result, "error", None))
            self.completion_warning = getattr(result, "error", None) or "Failed to save study session"
