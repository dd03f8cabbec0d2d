import pytest

from fileshare.errors import InvalidArgumentError
from fileshare.reactions import ReactionType, parse_reaction, transition

LIKE = ReactionType.LIKE
DISLIKE = ReactionType.DISLIKE


def test_first_reaction_creates_record():
    step = transition(None, LIKE)
    assert step.new_state is LIKE
    assert (step.like_delta, step.dislike_delta) == (1, 0)
    assert step.record_action == "insert"


def test_first_dislike():
    step = transition(None, DISLIKE)
    assert step.new_state is DISLIKE
    assert (step.like_delta, step.dislike_delta) == (0, 1)


@pytest.mark.parametrize("reaction", [LIKE, DISLIKE])
def test_same_reaction_toggles_off(reaction):
    step = transition(reaction, reaction)
    assert step.new_state is None
    assert step.delta_for(reaction) == -1
    assert step.delta_for(ReactionType.DISLIKE if reaction is LIKE else LIKE) == 0
    assert step.record_action == "delete"


def test_switch_moves_one_count():
    step = transition(LIKE, DISLIKE)
    assert step.new_state is DISLIKE
    assert (step.like_delta, step.dislike_delta) == (-1, 1)
    assert step.record_action == "update"

    step = transition(DISLIKE, LIKE)
    assert (step.like_delta, step.dislike_delta) == (1, -1)


def test_parse_reaction_accepts_enum_values():
    assert parse_reaction("like") is LIKE
    assert parse_reaction("dislike") is DISLIKE
    assert parse_reaction(DISLIKE) is DISLIKE


@pytest.mark.parametrize("value", ["love", "LIKE", "", None, 1])
def test_parse_reaction_rejects_other_values(value):
    with pytest.raises(InvalidArgumentError):
        parse_reaction(value)
