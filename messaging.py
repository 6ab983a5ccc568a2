# messaging.py
import logging
from typing import List
from config import DEFAULT_PAGE_SIZE, MAX_MESSAGE_LENGTH, MAX_PAGE_SIZE
from database import Store
from errors import ConflictError, NotFoundError, ValidationError
from models import MatchStatus, Message

logger = logging.getLogger(__name__)

# Same wording for "no such match" and "not your match" so ids can't be probed.
NOT_FOUND_OR_NOT_MEMBER = "match not found or sender not part of it"


def send_message(store: Store, match_id: int, sender_id: int, content: str) -> Message:
    """
    Post a chat message into a match thread.
    Checked in order: membership, match status, content length.
    """
    match = store.get_match(match_id)
    if match is None or not match.has_participant(sender_id):
        logger.warning("Send to match %s by %s rejected: not found or not a member", match_id, sender_id)
        raise NotFoundError(NOT_FOUND_OR_NOT_MEMBER)

    if match.status != MatchStatus.active:
        logger.warning("Send to match %s by %s rejected: match is %s", match_id, sender_id, match.status.value)
        raise ConflictError("cannot send message to archived match")

    if not 1 <= len(content) <= MAX_MESSAGE_LENGTH:
        logger.warning("Send to match %s by %s rejected: content length %s", match_id, sender_id, len(content))
        raise ValidationError(f"content must be between 1 and {MAX_MESSAGE_LENGTH} characters")

    message = store.insert_message(match_id, sender_id, content)
    logger.info("Message %s sent in match %s by %s", message.id, match_id, sender_id)
    return message


def list_match_messages(store: Store, match_id: int, limit: int = DEFAULT_PAGE_SIZE,
                        offset: int = 0) -> List[Message]:
    """Return one page of a match's messages, newest first. Archived matches stay readable."""
    if not 1 <= limit <= MAX_PAGE_SIZE:
        logger.warning("Listing match %s rejected: limit %s", match_id, limit)
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        logger.warning("Listing match %s rejected: offset %s", match_id, offset)
        raise ValidationError("offset must be >= 0")

    if store.get_match(match_id) is None:
        raise NotFoundError(f"match {match_id} not found")

    return store.list_messages(match_id, limit, offset)
