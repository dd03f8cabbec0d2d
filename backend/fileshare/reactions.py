"""Like/dislike state machine.

Each (user, file) pair is in one of three states: no reaction, liked or
disliked. Given the current state and the reaction the user asked for,
``transition`` returns the next state and the counter deltas that keep
``likes``/``dislikes`` equal to the number of reaction records per file.
The stores apply the result inside their own atomic unit.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fileshare.errors import InvalidArgumentError


class ReactionType(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


@dataclass(frozen=True)
class Transition:
    previous: Optional[ReactionType]
    new_state: Optional[ReactionType]
    like_delta: int = 0
    dislike_delta: int = 0

    def delta_for(self, reaction: ReactionType) -> int:
        return self.like_delta if reaction is ReactionType.LIKE else self.dislike_delta

    @property
    def record_action(self) -> str:
        """'insert', 'update' or 'delete', for the reaction record."""
        if self.previous is None:
            return "insert"
        if self.new_state is None:
            return "delete"
        return "update"


def parse_reaction(value) -> ReactionType:
    """Coerce a raw reaction value, rejecting anything outside the enum."""
    if isinstance(value, ReactionType):
        return value
    try:
        return ReactionType(value)
    except ValueError:
        raise InvalidArgumentError(f"Invalid reaction: {value!r} (expected 'like' or 'dislike')")


def _delta(reaction: ReactionType, amount: int) -> dict:
    if reaction is ReactionType.LIKE:
        return {"like_delta": amount}
    return {"dislike_delta": amount}


def transition(current: Optional[ReactionType], desired: ReactionType) -> Transition:
    """Compute the next reaction state and counter deltas."""
    if current is None:
        return Transition(previous=None, new_state=desired, **_delta(desired, 1))

    if current is desired:
        # Same reaction again toggles it off
        return Transition(previous=current, new_state=None, **_delta(desired, -1))

    return Transition(
        previous=current,
        new_state=desired,
        **_delta(desired, 1),
        **_delta(current, -1),
    )
