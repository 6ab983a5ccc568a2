# matcher.py
import logging
from typing import List, Tuple
from config import DISCOVER_PAGE_SIZE, MAX_DISCOVER_PAGE_SIZE
from database import Store
from errors import ConflictError, NotFoundError, ValidationError
from models import InteractionKind, InteractionResult, Match, Profile

logger = logging.getLogger(__name__)


def pair_key(id_a: int, id_b: int) -> Tuple[int, int]:
    """Canonical (min, max) key for an unordered pair of profile ids."""
    return (id_a, id_b) if id_a < id_b else (id_b, id_a)


def ensure_match(store: Store, id_a: int, id_b: int) -> Match:
    """
    Return the single match row for the pair, creating it if needed.
    Argument order does not matter. An existing match is returned untouched.
    """
    if id_a == id_b:
        raise ValidationError("a profile cannot match with itself")
    user1_id, user2_id = pair_key(id_a, id_b)

    existing = store.get_match_by_pair(user1_id, user2_id)
    if existing:
        return existing

    try:
        match = store.insert_match(user1_id, user2_id)
    except ConflictError:
        # Another caller created the pair between our read and our insert.
        winner = store.get_match_by_pair(user1_id, user2_id)
        if winner is None:
            raise
        logger.info("Match race on (%s, %s) resolved to match %s", user1_id, user2_id, winner.id)
        return winner

    logger.info("Match %s created for (%s, %s)", match.id, user1_id, user2_id)
    return match


def record_interaction(store: Store, actor_id: int, target_id: int, kind: str) -> InteractionResult:
    """
    Record a like/pass from actor_id toward target_id.
    On a like that is reciprocated, the pair's match is returned alongside the interaction.
    """
    if actor_id == target_id:
        logger.warning("Interaction rejected, %s targeted itself", actor_id)
        raise ValidationError("users cannot interact with themselves")
    try:
        kind = InteractionKind(kind)
    except ValueError:
        logger.warning("Interaction %s -> %s rejected, unknown kind %r", actor_id, target_id, kind)
        raise ValidationError(f"unknown interaction kind: {kind!r}") from None

    missing = [pid for pid in (actor_id, target_id) if not store.profile_exists(pid)]
    if missing:
        logger.warning("Interaction %s -> %s rejected, unknown profile(s) %s", actor_id, target_id, missing)
        raise NotFoundError("one or both users do not exist")

    try:
        interaction = store.insert_interaction(actor_id, target_id, kind.value)
    except ConflictError:
        logger.warning("Interaction %s -> %s rejected, already recorded", actor_id, target_id)
        raise
    logger.info("Interaction %s: %s %s %s", interaction.id, actor_id, kind.value, target_id)

    if kind is not InteractionKind.like:
        return InteractionResult(interaction=interaction)

    reciprocal = store.find_interaction(target_id, actor_id, InteractionKind.like.value)
    if reciprocal is None:
        return InteractionResult(interaction=interaction)

    return InteractionResult(interaction=interaction, match=ensure_match(store, actor_id, target_id))


def get_user_matches(store: Store, user_id: int) -> List[Match]:
    """Active matches the user takes part in, newest first."""
    return store.list_user_matches(user_id)


def get_discoverable_profiles(store: Store, user_id: int, limit: int = DISCOVER_PAGE_SIZE,
                              offset: int = 0) -> List[Profile]:
    """Active profiles the user has not liked or passed on yet."""
    if not 1 <= limit <= MAX_DISCOVER_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_DISCOVER_PAGE_SIZE}")
    if offset < 0:
        raise ValidationError("offset must be >= 0")
    return store.list_discoverable_profiles(user_id, limit, offset)
