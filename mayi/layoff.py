"""Rules for adding to melds already on the table.

Laying off adds a single card from hand to any meld on the table.  It is only legal for a
player who went down on an earlier turn, after drawing.  Joker swapping trades a natural
card from hand for a Joker sitting in a meld; the Joker goes to the player's hand.
"""

from typing import List, Optional, Tuple

from .common import Card, Rank
from .meld import Meld, count_wilds_and_naturals, run_bounds, set_rank


START = "start"
END = "end"
POSITIONS = (START, END)


class InvalidLayOff(Exception):
    pass


class InvalidSwap(Exception):
    pass


def can_lay_off(is_down: bool, laid_down_this_turn: bool, has_drawn: bool) -> bool:
    """Whether a player is in a position to lay off at all, regardless of the card."""
    return is_down and not laid_down_this_turn and has_drawn


def can_lay_off_to_set(card: Card, meld: Meld) -> bool:
    if not meld.is_set:
        return False
    rank = set_rank(meld.cards)
    if card.is_natural and rank is not None and card.rank != rank:
        return False
    wilds, naturals = count_wilds_and_naturals(meld.cards + (card,))
    return wilds <= naturals


def run_lay_off_positions(card: Card, meld: Meld) -> List[str]:
    """The ends of a run the card may legally extend, low end first."""
    if not meld.is_run:
        return []
    bounds = run_bounds(meld.cards)
    if bounds is None:
        return []
    wilds, naturals = count_wilds_and_naturals(meld.cards + (card,))
    if wilds > naturals:
        return []
    positions = []
    if card.is_wild:
        if bounds.low > Rank.RUN_MIN:
            positions.append(START)
        if bounds.high < Rank.MAX:
            positions.append(END)
        return positions
    if card.suit != bounds.suit:
        return []
    if card.rank == bounds.low - 1 and card.rank >= Rank.RUN_MIN:
        positions.append(START)
    if card.rank == bounds.high + 1 and card.rank <= Rank.MAX:
        positions.append(END)
    return positions


def can_lay_off_to_run(card: Card, meld: Meld) -> bool:
    return bool(run_lay_off_positions(card, meld))


def lay_off_position(card: Card, meld: Meld, position: Optional[str] = None) -> Optional[str]:
    """Pick where the card goes, or None if it does not fit.

    Sets always take the card at the end.  A wild that fits either end of a run goes on the
    high end unless the caller asks for the low end.
    """
    if position is not None and position not in POSITIONS:
        return None
    if meld.is_set:
        return END if can_lay_off_to_set(card, meld) else None
    positions = run_lay_off_positions(card, meld)
    if not positions:
        return None
    if position is None:
        return END if END in positions else positions[0]
    return position if position in positions else None


def lay_off(card: Card, meld: Meld, position: Optional[str] = None) -> Meld:
    """Return the meld with the card added."""
    chosen = lay_off_position(card, meld, position)
    if chosen is None:
        raise InvalidLayOff("%s does not fit %s" % (card, meld))
    if chosen == START:
        return meld.with_cards((card,) + meld.cards)
    return meld.with_cards(meld.cards + (card,))


def joker_slot(meld: Meld, joker_id: str) -> Optional[Tuple[int, Optional[int]]]:
    """The (rank, suit) a Joker in a meld stands for.  Set slots accept any suit (None)."""
    index = meld.index_of(joker_id)
    if index is None or not meld.cards[index].is_joker:
        return None
    if meld.is_set:
        rank = set_rank(meld.cards)
        return None if rank is None else (rank, None)
    bounds = run_bounds(meld.cards)
    if bounds is None:
        return None
    return bounds.low + index, bounds.suit


def can_swap_joker(meld: Meld, joker_id: str, replacement: Card) -> bool:
    """Only Jokers are swappable (never 2s), and only for the exact natural they stand for."""
    if replacement.is_wild:
        return False
    slot = joker_slot(meld, joker_id)
    if slot is None:
        return False
    rank, suit = slot
    if replacement.rank != rank:
        return False
    return suit is None or replacement.suit == suit


def swap_joker(meld: Meld, joker_id: str, replacement: Card) -> Tuple[Meld, Card]:
    """Return the meld with the replacement in the Joker's place, and the freed Joker."""
    if not can_swap_joker(meld, joker_id, replacement):
        raise InvalidSwap("%s cannot replace joker %s in %s" % (replacement, joker_id, meld))
    index = meld.index_of(joker_id)
    joker = meld.cards[index]
    cards = list(meld.cards)
    cards[index] = replacement
    return meld.with_cards(cards), joker
