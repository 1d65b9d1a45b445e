import pytest

from mayi.common import Card
from mayi.layoff import (
    END,
    START,
    InvalidLayOff,
    InvalidSwap,
    can_lay_off,
    can_lay_off_to_run,
    can_lay_off_to_set,
    can_swap_joker,
    joker_slot,
    lay_off,
    lay_off_position,
    run_lay_off_positions,
    swap_joker,
)
from mayi.meld import Meld


def cards(*faces):
    return [Card.deserialize(face.split("#")[0], id=face) for face in faces]


def card(face):
    return cards(face)[0]


def a_set(*faces):
    return Meld("meld-1-0", Meld.SET, cards(*faces), "player-0")


def a_run(*faces):
    return Meld("meld-1-1", Meld.RUN, cards(*faces), "player-1")


def test_can_lay_off_guards():
    assert can_lay_off(is_down=True, laid_down_this_turn=False, has_drawn=True)
    assert not can_lay_off(is_down=False, laid_down_this_turn=False, has_drawn=True)
    assert not can_lay_off(is_down=True, laid_down_this_turn=True, has_drawn=True)
    assert not can_lay_off(is_down=True, laid_down_this_turn=False, has_drawn=False)


class TestSetLayOff:
    def test_natural(self):
        meld = a_set("9c", "9d", "9h")
        assert can_lay_off_to_set(card("9s"), meld)
        assert not can_lay_off_to_set(card("8s"), meld)
        extended = lay_off(card("9s"), meld)
        assert extended.card_ids == ["9c", "9d", "9h", "9s"]
        assert extended.id == meld.id
        assert len(meld.cards) == 3

    def test_wild_ratio(self):
        assert can_lay_off_to_set(card("2h"), a_set("9c", "9d", "Joker"))
        assert not can_lay_off_to_set(card("2h"), a_set("9c", "9d", "Joker", "2s"))
        assert can_lay_off_to_set(card("9s"), a_set("9c", "9d", "Joker", "2s"))

    def test_not_a_set(self):
        assert not can_lay_off_to_set(card("7h"), a_run("3h", "4h", "5h", "6h"))


class TestRunLayOff:
    def test_natural_ends(self):
        meld = a_run("5h", "6h", "7h", "8h")
        assert run_lay_off_positions(card("4h"), meld) == [START]
        assert run_lay_off_positions(card("9h"), meld) == [END]
        assert run_lay_off_positions(card("9d"), meld) == []
        assert run_lay_off_positions(card("6h#1"), meld) == []
        assert lay_off(card("4h"), meld).card_ids == ["4h", "5h", "6h", "7h", "8h"]
        assert lay_off(card("9h"), meld).card_ids == ["5h", "6h", "7h", "8h", "9h"]

    def test_wild_either_end(self):
        meld = a_run("5h", "6h", "7h", "8h")
        assert run_lay_off_positions(card("Joker"), meld) == [START, END]
        assert lay_off_position(card("Joker"), meld) == END
        assert lay_off_position(card("Joker"), meld, START) == START
        assert lay_off(card("2c"), meld, START).card_ids == ["2c", "5h", "6h", "7h", "8h"]
        assert lay_off_position(card("Joker"), meld, "middle") is None

    def test_bounds(self):
        low = a_run("3h", "4h", "5h", "6h")
        assert run_lay_off_positions(card("Joker"), low) == [END]
        assert lay_off_position(card("Joker"), low, START) is None
        high = a_run("Jh", "Qh", "Kh", "Ah")
        assert run_lay_off_positions(card("Joker"), high) == [START]
        assert run_lay_off_positions(card("10h"), high) == [START]
        assert not can_lay_off_to_run(card("3h"), high)

    def test_wild_ratio(self):
        meld = a_run("5h", "Joker", "7h", "2c")
        assert not can_lay_off_to_run(card("Joker#1"), meld)
        assert can_lay_off_to_run(card("9h"), meld)

    def test_invalid(self):
        with pytest.raises(InvalidLayOff):
            lay_off(card("Kd"), a_run("5h", "6h", "7h", "8h"))
        assert not can_lay_off_to_run(card("4h"), a_set("9c", "9d", "9h"))


class TestJokerSwap:
    def test_run(self):
        meld = a_run("5h", "Joker", "7h", "8h")
        assert joker_slot(meld, "Joker") == (6, card("6h").suit)
        assert can_swap_joker(meld, "Joker", card("6h"))
        assert not can_swap_joker(meld, "Joker", card("6d"))
        assert not can_swap_joker(meld, "Joker", card("9h"))
        swapped, joker = swap_joker(meld, "Joker", card("6h"))
        assert swapped.card_ids == ["5h", "6h", "7h", "8h"]
        assert joker.is_joker
        assert swapped.is_valid

    def test_set_any_suit(self):
        meld = a_set("9c", "9d", "Joker")
        assert joker_slot(meld, "Joker") == (9, None)
        assert can_swap_joker(meld, "Joker", card("9s"))
        assert not can_swap_joker(meld, "Joker", card("8s"))

    def test_twos_are_not_swappable(self):
        meld = a_run("5h", "2c", "7h", "8h")
        assert joker_slot(meld, "2c") is None
        assert not can_swap_joker(meld, "2c", card("6h"))

    def test_replacement_must_be_natural(self):
        meld = a_run("5h", "Joker", "7h", "8h")
        assert not can_swap_joker(meld, "Joker", card("2h"))
        assert not can_swap_joker(meld, "Joker", card("Joker#1"))
        with pytest.raises(InvalidSwap):
            swap_joker(meld, "Joker", card("2h"))

    def test_unknown_joker(self):
        meld = a_run("5h", "Joker", "7h", "8h")
        assert joker_slot(meld, "nope") is None
        assert not can_swap_joker(meld, "nope", card("6h"))
