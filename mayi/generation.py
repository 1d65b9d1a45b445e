"""Move generation for automated players.

Candidate melds are generated as slot templates: a tuple of natural cards with `None`
marking a slot a wild has to fill.  Wilds are only assigned once a combination of
candidates is chosen, so two candidates never compete for the same wild card.
"""

import itertools
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .common import Card, Rank, Suit
from .contract import Contract
from .layoff import can_swap_joker, lay_off, lay_off_position
from .meld import Meld, MeldProposal, is_valid_meld


__all__ = (
    "Candidate",
    "find_contract_melds",
    "find_joker_swap",
    "find_lay_off",
    "iter_contract_melds",
    "iter_runs",
    "iter_sets",
    "plan_go_out",
)


class Candidate(NamedTuple):
    kind: str
    slots: Tuple[Optional[Card], ...]

    @property
    def naturals(self) -> List[Card]:
        return [card for card in self.slots if card is not None]

    @property
    def wilds_needed(self) -> int:
        return sum(1 for card in self.slots if card is None)

    def materialize(self, wilds: Iterable[Card]) -> List[Card]:
        wilds = iter(wilds)
        return [card if card is not None else next(wilds) for card in self.slots]


def split_wilds(cards: Iterable[Card]) -> Tuple[List[Card], List[Card]]:
    wilds, naturals = [], []
    for card in cards:
        (wilds if card.is_wild else naturals).append(card)
    return wilds, naturals


def group_by_rank(cards: Iterable[Card]) -> Dict[int, List[Card]]:
    groups: Dict[int, List[Card]] = {}
    for card in cards:
        groups.setdefault(card.rank, []).append(card)
    return groups


def iter_sets(cards: Sequence[Card]) -> Iterable[Candidate]:
    wilds, naturals = split_wilds(cards)
    for rank, group in sorted(group_by_rank(naturals).items()):
        if len(group) >= 3:
            yield Candidate(Meld.SET, tuple(group))
            if len(group) > 3:
                yield Candidate(Meld.SET, tuple(group[:3]))
        elif len(group) == 2 and wilds:
            yield Candidate(Meld.SET, tuple(group) + (None,))


def iter_runs(cards: Sequence[Card], min_length: int = 4) -> Iterable[Candidate]:
    """Runs whose lowest and highest cards are naturals, gaps filled by wild slots."""
    wilds, naturals = split_wilds(cards)
    for suit in Suit.iter():
        by_rank: Dict[int, Card] = {}
        for card in naturals:
            if card.suit == suit and Rank.RUN_MIN <= card.rank and card.rank not in by_rank:
                by_rank[card.rank] = card
        for low, high in itertools.combinations(sorted(by_rank), 2):
            if high - low + 1 < min_length:
                continue
            slots = tuple(by_rank.get(rank) for rank in range(low, high + 1))
            candidate = Candidate(Meld.RUN, slots)
            if candidate.wilds_needed <= min(len(wilds), len(candidate.naturals)):
                yield candidate


def _disjoint(candidates: Sequence[Candidate]) -> bool:
    ids = [card.id for candidate in candidates for card in candidate.naturals]
    return len(ids) == len(set(ids))


def iter_contract_melds(cards: Sequence[Card], contract: Contract) -> Iterable[List[MeldProposal]]:
    wilds, _ = split_wilds(cards)
    sets = list(iter_sets(cards))
    runs = list(iter_runs(cards))
    for chosen_sets in itertools.combinations(sets, contract.sets):
        if not _disjoint(chosen_sets):
            continue
        for chosen_runs in itertools.combinations(runs, contract.runs):
            chosen = chosen_sets + chosen_runs
            if not _disjoint(chosen):
                continue
            if sum(candidate.wilds_needed for candidate in chosen) > len(wilds):
                continue
            remaining = list(wilds)
            proposals = []
            for candidate in chosen:
                needed, remaining = remaining[: candidate.wilds_needed], remaining[candidate.wilds_needed :]
                meld_cards = candidate.materialize(needed)
                if not is_valid_meld(candidate.kind, meld_cards):
                    break
                proposals.append(MeldProposal(candidate.kind, tuple(card.id for card in meld_cards)))
            else:
                yield proposals


def find_contract_melds(cards: Sequence[Card], contract: Contract) -> Optional[List[MeldProposal]]:
    """The combination meeting the contract that uses the most cards, if any."""
    best = None
    for proposals in iter_contract_melds(cards, contract):
        used = sum(len(proposal.card_ids) for proposal in proposals)
        if best is None or used > best[0]:
            best = (used, proposals)
    return best[1] if best else None


def find_lay_off(cards: Iterable[Card], table: Iterable[Meld]) -> Optional[Tuple[Card, Meld, str]]:
    # naturals first, wilds are worth holding on to for longer
    cards = sorted(cards, key=lambda card: card.is_wild)
    table = list(table)
    for card in cards:
        for meld in table:
            position = lay_off_position(card, meld)
            if position is not None:
                return card, meld, position
    return None


def find_joker_swap(cards: Iterable[Card], table: Iterable[Meld]) -> Optional[Tuple[str, Meld, Card]]:
    cards = list(cards)
    for meld in table:
        for joker in meld.cards:
            if not joker.is_joker:
                continue
            for card in cards:
                if can_swap_joker(meld, joker.id, card):
                    return joker.id, meld, card
    return None


def plan_go_out(cards: Iterable[Card], table: Iterable[Meld]) -> Optional[List[Tuple[str, str]]]:
    """Lay-offs that empty the hand, found greedily, or None."""
    remaining = list(cards)
    table = list(table)
    plan = []
    while remaining:
        found = find_lay_off(remaining, table)
        if found is None:
            return None
        card, meld, position = found
        table[table.index(meld)] = lay_off(card, meld, position)
        remaining.remove(card)
        plan.append((card.id, meld.id))
    return plan
