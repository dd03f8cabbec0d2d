"""Reaction engine: like/dislike toggling against the selected record store.

The store runs the whole read-transition-write sequence as one atomic unit
(see ``fileshare.reactions`` for the state machine). The engine validates
the request, lets the availability selector choose the store, and falls back
to the local store once if the remote transaction fails.
"""
import logging

from fileshare.errors import InvalidArgumentError
from fileshare.reactions import ReactionType, parse_reaction
from fileshare.schemas.reaction import ReactionOutcome
from fileshare.services.session import Session

logger = logging.getLogger(__name__)


def _require_user(session: Session) -> str:
    if not session.user_id:
        raise InvalidArgumentError("A user id is required to react to files")
    return session.user_id


async def apply_reaction(session: Session, file_id: str, reaction) -> ReactionOutcome:
    """Like or dislike ``file_id`` as the session user.

    Repeating the current reaction removes it; the opposite reaction switches
    it. Raises InvalidArgumentError for reactions outside like/dislike and
    NotFoundError when the file does not exist in the chosen store.
    """
    desired = parse_reaction(reaction)
    user_id = _require_user(session)
    if not file_id:
        raise InvalidArgumentError("A file id is required")

    outcome = await session.selector.run_with_fallback(
        f"Reaction on {file_id}",
        lambda store: store.apply_reaction_transaction(file_id, user_id, desired),
        mirror=lambda local, result: local.mirror_reaction(file_id, user_id, result),
    )
    logger.info(
        f"{user_id} {desired.value} on {file_id}: now {outcome.reaction.value if outcome.reaction else 'none'} "
        f"(likes={outcome.likes}, dislikes={outcome.dislikes})"
    )
    return outcome


async def toggle_like(session: Session, file_id: str) -> ReactionOutcome:
    return await apply_reaction(session, file_id, ReactionType.LIKE)


async def toggle_dislike(session: Session, file_id: str) -> ReactionOutcome:
    return await apply_reaction(session, file_id, ReactionType.DISLIKE)


async def get_user_reactions(session: Session) -> dict[str, ReactionType]:
    """The session user's reactions, keyed by file id."""
    user_id = _require_user(session)
    return await session.selector.run_with_fallback(
        f"Loading reactions of {user_id}",
        lambda store: store.get_reactions_for_user(user_id),
        mirror=lambda local, result: local.mirror_user_reactions(user_id, result),
    )
