from typing import Iterable, List, Optional, Tuple

from .common import Card


class Hand:
    """A hand of cards.

    Unlike a pile, the order of a hand belongs to its player: cards stay where the player
    put them and new cards are appended at the end.  Cards are addressed by id, e.g.
    h.take_card("1-42").

    Takes are transacted, so you can rollback or commit them. Puts are not transacted.
    """

    class Error(Exception):
        pass

    class InvalidTake(Error):
        pass

    __slots__ = ("cards", "taken")

    def __init__(self, cards: Optional[Iterable[Card]] = None) -> None:
        self.cards: List[Card] = []
        # stack of (index, card) takes, None represents start of a "transaction"
        self.taken: List[Optional[Tuple[int, Card]]] = []
        for card in cards or []:
            self.put_card(card)
        self.commit()

    @property
    def empty(self) -> bool:
        return not self.cards

    @property
    def ids(self) -> List[str]:
        return [card.id for card in self.cards]

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterable[Card]:
        return iter(self.cards)

    def __contains__(self, card_id: str) -> bool:
        return self.find(card_id) is not None

    def __eq__(self, other) -> bool:
        if not isinstance(other, Hand):
            return False
        return self.cards == other.cards

    def find(self, card_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def copy(self) -> "Hand":
        return Hand(self.cards)

    def commit(self):
        self.taken.append(None)

    def rollback(self):
        while self.taken[-1] is not None:
            index, card = self.taken.pop()
            self.cards.insert(index, card)

    def take_card(self, card_id: str) -> Card:
        for index, card in enumerate(self.cards):
            if card.id == card_id:
                del self.cards[index]
                self.taken.append((index, card))
                return card
        raise self.InvalidTake("You do not have card %s!" % card_id)

    def take_cards(self, card_ids: Iterable[str]) -> List[Card]:
        """Take several cards at once.  Either all of them are taken or none are."""
        taken = []
        try:
            for card_id in card_ids:
                taken.append(self.take_card(card_id))
        except self.InvalidTake:
            self.rollback()
            raise
        self.commit()
        return taken

    def put_card(self, card: Card) -> None:
        if not isinstance(card, Card):
            raise TypeError("Expected card to be Card, got %s" % type(card))
        self.cards.append(card)

    def reorder(self, card_ids: List[str]) -> None:
        if sorted(card_ids) != sorted(self.ids) or len(set(card_ids)) != len(card_ids):
            raise self.Error("New order must be a permutation of the hand.")
        by_id = {card.id: card for card in self.cards}
        self.cards = [by_id[card_id] for card_id in card_ids]

    def __str__(self):
        return "Hand(%s)" % " ".join("%s" % card for card in self)
