import pytest

from conftest import make_card
from pack_components.card_utils.card import Rarity
from pack_components.errors import EmptyPackError, InvalidTransitionError
from pack_components.reveal import RevealSession, RevealState, sort_for_reveal


@pytest.fixture
def mixed_cards():
    return [
        make_card("e1", Rarity.EPIC),
        make_card("c1", Rarity.COMMON),
        make_card("r1", Rarity.RARE),
        make_card("c2", Rarity.COMMON),
        make_card("u1", Rarity.UNCOMMON),
    ]


def test_reveal_order_is_ascending_and_stable(mixed_cards):
    ordered = sort_for_reveal(mixed_cards)
    assert [c.id for c in ordered] == ["c1", "c2", "u1", "r1", "e1"]


def test_new_session_is_closed(mixed_cards):
    session = RevealSession.create(mixed_cards, pack_id="test-pack")
    assert session.state is RevealState.CLOSED
    assert session.current_card is None
    assert session.revealed_cards == ()
    assert session.progress == 0.0
    assert session.has_rares


def test_start_shows_the_first_card(mixed_cards):
    session = RevealSession.create(mixed_cards).start()
    assert session.state is RevealState.REVEALING
    assert session.current_index == 0
    assert session.current_card.id == "c1"
    assert session.remaining == 4


def test_transitions_return_new_sessions(mixed_cards):
    closed = RevealSession.create(mixed_cards)
    opened = closed.start()
    assert closed.state is RevealState.CLOSED
    assert opened is not closed
    advanced = opened.next()
    assert opened.current_index == 0
    assert advanced.current_index == 1


def test_next_through_every_card_completes(mixed_cards):
    session = RevealSession.create(mixed_cards).start()
    for _ in range(len(mixed_cards)):
        session = session.next()
    assert session.state is RevealState.COMPLETE
    assert session.progress == 1.0
    assert not session.skipped_to_rare


def test_skip_to_rare_jumps_to_first_rare(mixed_cards):
    session = RevealSession.create(mixed_cards).start().skip_to_rare()
    assert session.current_index == 3
    assert session.current_card.id == "r1"
    assert session.skipped_to_rare


def test_skip_to_rare_never_moves_backwards(mixed_cards):
    session = RevealSession.create(mixed_cards).start().skip_to_rare().next()
    assert session.current_card.id == "e1"
    assert session.skip_to_rare().current_index == 4


def test_skip_to_rare_without_rares_completes():
    cards = [make_card("c1"), make_card("u1", Rarity.UNCOMMON)]
    session = RevealSession.create(cards)
    assert not session.has_rares
    session = session.start().skip_to_rare()
    assert session.state is RevealState.COMPLETE
    assert session.skipped_to_rare


def test_legendary_scenario_commits_all_cards():
    cards = [make_card("c1"), make_card("c2"), make_card("l1", Rarity.LEGENDARY)]
    session = RevealSession.create(cards).start().skip_to_rare()
    assert session.current_index == 2
    session = session.next()
    assert session.state is RevealState.COMPLETE
    _, outcome = session.finish()
    assert {c.id for c in outcome.cards} == {"c1", "c2", "l1"}


def test_skip_all_keeps_every_card_in_the_outcome(mixed_cards):
    session = RevealSession.create(mixed_cards, pack_id="test-pack", session_id="s1").start().skip_all()
    assert session.state is RevealState.COMPLETE
    completed, outcome = session.finish()
    assert completed.state is RevealState.COMPLETE
    assert outcome.session_id == "s1"
    assert outcome.pack_id == "test-pack"
    assert outcome.skipped_to_rare
    assert sorted(c.id for c in outcome.cards) == sorted(c.id for c in mixed_cards)


def test_finish_mid_reveal_abandons_the_rest(mixed_cards):
    session = RevealSession.create(mixed_cards).start().next()
    completed, outcome = session.finish()
    assert completed.state is RevealState.COMPLETE
    assert len(outcome.cards) == len(mixed_cards)


def test_empty_pack_cannot_start():
    with pytest.raises(EmptyPackError):
        RevealSession.create([]).start()


@pytest.mark.parametrize("action", ["next", "skip_to_rare", "skip_all", "finish"])
def test_actions_before_start_are_rejected(mixed_cards, action):
    session = RevealSession.create(mixed_cards)
    with pytest.raises(InvalidTransitionError):
        getattr(session, action)()


@pytest.mark.parametrize("action", ["start", "next", "skip_to_rare", "skip_all"])
def test_complete_is_terminal(mixed_cards, action):
    session = RevealSession.create(mixed_cards).start().skip_all()
    with pytest.raises(InvalidTransitionError):
        getattr(session, action)()


def test_session_dict_reports_progress(mixed_cards):
    data = RevealSession.create(mixed_cards, session_id="s2").start().next().to_dict()
    assert data["sessionId"] == "s2"
    assert data["state"] == "revealing"
    assert data["currentCard"]["id"] == "c2"
    assert [c["id"] for c in data["revealedCards"]] == ["c1", "c2"]
    assert data["progress"] == 0.4
