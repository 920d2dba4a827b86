"""Errors raised at the collaborator boundary.

The scheduling engine itself never raises; these come from card stores and
the review service.
"""


class CadenceError(Exception):
    """Base class for all cadence errors."""


class CardNotFoundError(CadenceError):
    """The card does not exist or is outside the caller's ownership scope."""

    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class ConcurrentReviewError(CadenceError):
    """The card's memory state changed between read and write."""

    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(f"Card {card_id} was reviewed concurrently; reload and retry")


class DeckNotFoundError(CadenceError):
    """The deck does not exist or is outside the caller's ownership scope."""

    def __init__(self, deck_id: int):
        self.deck_id = deck_id
        super().__init__(f"Deck {deck_id} not found")
