from dataclasses import dataclass
from types import MappingProxyType
import random

from typing import Iterable, List, Optional, Tuple


class Suit:
    """Suit of a card."""

    class Error(Exception):
        pass

    class InvalidSuit(Error):
        pass

    HEARTS = MIN = 0
    DIAMONDS = 1
    CLUBS = 2
    SPADES = MAX = 3

    SUITS = {
        HEARTS: "hearts",
        DIAMONDS: "diamonds",
        CLUBS: "clubs",
        SPADES: "spades",
    }

    NAMES_TO_SUITS = {v: k for k, v in SUITS.items()}

    UNICODE_SUITS = {
        HEARTS: "♥",
        DIAMONDS: "♦",
        CLUBS: "♣",
        SPADES: "♠",
    }

    @classmethod
    def validate(cls, suit: int) -> int:
        if suit not in cls.SUITS:
            raise cls.InvalidSuit("Unknown suit: %s" % suit)
        return suit

    @classmethod
    def to_str(cls, suit: int) -> str:
        return cls.UNICODE_SUITS[cls.validate(suit)]

    @classmethod
    def to_name(cls, suit: Optional[int]) -> Optional[str]:
        return None if suit is None else cls.SUITS[cls.validate(suit)]

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional[int]:
        if name is None:
            return None
        try:
            return cls.NAMES_TO_SUITS[name]
        except KeyError:
            raise cls.InvalidSuit("Unknown suit: %s" % name)

    @classmethod
    def iter(cls) -> Iterable[int]:
        return iter((cls.HEARTS, cls.DIAMONDS, cls.CLUBS, cls.SPADES))


class Rank:
    """Rank of a card.  Naturals are 2..14 (ace high), jokers have their own rank."""

    class Error(Exception):
        pass

    class InvalidRank(Error):
        pass

    FACES = {
        11: "J",
        12: "Q",
        13: "K",
        14: "A",
    }

    JOKER = 0
    MIN = 2
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = MAX = 14

    # 2s are wild, so the lowest rank a run can reach is 3.
    RUN_MIN = 3

    @classmethod
    def validate(cls, rank: int) -> int:
        if rank != cls.JOKER and (rank < cls.MIN or rank > cls.MAX):
            raise cls.InvalidRank(
                "Rank must be between [%d, %d] or a joker, got %s" % (cls.MIN, cls.MAX, rank)
            )
        return rank

    @classmethod
    def to_str(cls, rank: int) -> str:
        if cls.validate(rank) == cls.JOKER:
            return "Joker"
        return cls.FACES.get(rank, str(rank))

    @classmethod
    def from_str(cls, s: str) -> int:
        if s == "Joker":
            return cls.JOKER
        for rank, face in cls.FACES.items():
            if face == s:
                return rank
        try:
            return cls.validate(int(s))
        except ValueError:
            raise cls.InvalidRank("Unknown rank: %s" % s)

    @classmethod
    def iter(cls) -> Iterable[int]:
        return range(cls.MIN, cls.MAX + 1)


@dataclass(frozen=True)
class Card:
    """A card in the game of May I.

    Cards are immutable and identified by `id`, which is unique for the lifetime of a
    game even when several decks contribute the same rank and suit.
    """

    SCORES = MappingProxyType({
        2: 20,
        3: 3,
        4: 4,
        5: 5,
        6: 6,
        7: 7,
        8: 8,
        9: 9,
        10: 10,
        Rank.JACK: 10,
        Rank.QUEEN: 10,
        Rank.KING: 10,
        Rank.ACE: 15,
        Rank.JOKER: 50,
    })

    id: str
    rank: int
    suit: Optional[int] = None

    @classmethod
    def of(cls, rank: int, suit: int, id: Optional[str] = None) -> "Card":
        Rank.validate(rank)
        Suit.validate(suit)
        if rank == Rank.JOKER:
            raise ValueError("Jokers do not have a suit, use Card.joker().")
        return cls(id or "%s%s" % (Rank.to_str(rank), Suit.SUITS[suit][0]), rank, suit)

    @classmethod
    def joker(cls, id: Optional[str] = None) -> "Card":
        return cls(id or "joker", Rank.JOKER, None)

    @classmethod
    def deserialize(cls, s: str, id: Optional[str] = None) -> "Card":
        """Parse short forms such as "9c", "10h", "Qs" or "Joker"; the id defaults to `s`."""
        if s.lower() in ("joker", "??"):
            return cls.joker(id or s)
        rank, suit = s[:-1], s[-1].lower()
        for value, name in Suit.SUITS.items():
            if suit == name[0] or suit == Suit.UNICODE_SUITS[value]:
                return cls.of(Rank.from_str(rank.upper()), value, id=id or s)
        raise Suit.InvalidSuit("Unknown suit in %r" % s)

    @classmethod
    def from_dict(cls, d: dict) -> "Card":
        return cls(d["id"], Rank.from_str(d["rank"]), Suit.from_name(d["suit"]))

    def to_dict(self) -> dict:
        return {"id": self.id, "rank": Rank.to_str(self.rank), "suit": Suit.to_name(self.suit)}

    @property
    def is_joker(self) -> bool:
        return self.rank == Rank.JOKER

    @property
    def is_wild(self) -> bool:
        return self.rank == Rank.JOKER or self.rank == 2

    @property
    def is_natural(self) -> bool:
        return not self.is_wild

    @property
    def score(self) -> int:
        return self.SCORES[self.rank]

    def __str__(self):
        if self.is_joker:
            return "??"
        return "%s%s" % (Rank.to_str(self.rank), Suit.to_str(self.suit))


def hand_score(cards: Iterable[Card]) -> int:
    return sum(card.score for card in cards)


# players -> (standard decks, jokers)
DECK_CONFIG = MappingProxyType({
    3: (2, 4),
    4: (2, 4),
    5: (2, 4),
    6: (3, 6),
    7: (3, 6),
    8: (3, 6),
})


class Deck:
    """An ordered pile of cards whose top is index 0."""

    class Error(Exception):
        pass

    class InvalidTake(Error):
        pass

    class EmptyDeck(Error):
        pass

    @classmethod
    def config(cls, players: int) -> Tuple[int, int]:
        try:
            return DECK_CONFIG[players]
        except KeyError:
            raise cls.Error("No deck configuration for %d players" % players)

    @classmethod
    def new(cls, count: int = 2, jokers: int = 4, prefix: str = "card") -> "Deck":
        """Build an unshuffled deck of `count` standard decks plus `jokers` jokers."""
        cards = []
        serial = 0
        for _ in range(count):
            for suit in Suit.iter():
                for rank in Rank.iter():
                    cards.append(Card("%s-%d" % (prefix, serial), rank, suit))
                    serial += 1
        for _ in range(jokers):
            cards.append(Card("%s-%d" % (prefix, serial), Rank.JOKER, None))
            serial += 1
        return cls(cards)

    @classmethod
    def for_players(cls, players: int, prefix: str = "card") -> "Deck":
        count, jokers = cls.config(players)
        return cls.new(count=count, jokers=jokers, prefix=prefix)

    def __init__(self, cards: List[Card]) -> None:
        self.cards: List[Card] = list(cards)
        if not all(isinstance(card, Card) for card in self.cards):
            raise TypeError("Expected cards to be a list of Card, got %s" % type(cards))

    def __len__(self):
        return len(self.cards)

    def __iter__(self):
        return iter(self.cards)

    def shuffle(self, rng: random.Random) -> None:
        rng.shuffle(self.cards)

    def pop(self) -> Card:
        try:
            return self.cards.pop(0)
        except IndexError:
            raise self.EmptyDeck("Deck is empty.")

    def take(self, card_id: str) -> Card:
        for index, card in enumerate(self.cards):
            if card.id == card_id:
                return self.cards.pop(index)
        raise self.InvalidTake("Card %s not in deck." % card_id)
