# models.py
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class ProfileStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    banned = "banned"


class InteractionKind(str, Enum):
    like = "like"
    pass_ = "pass"


class MatchStatus(str, Enum):
    active = "active"
    archived = "archived"


# ----------------------
# Stored records
# ----------------------
class Profile(BaseModel):
    id: int
    username: str
    status: ProfileStatus
    created_at: datetime
    updated_at: datetime


class Interaction(BaseModel):
    id: int
    actor_id: int
    target_id: int
    kind: InteractionKind
    created_at: datetime


class Match(BaseModel):
    """A mutual like, stored once per unordered pair as (user1_id < user2_id)."""
    id: int
    user1_id: int
    user2_id: int
    status: MatchStatus
    created_at: datetime
    updated_at: datetime

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)


class Message(BaseModel):
    id: int
    match_id: int
    sender_id: int
    content: str
    created_at: datetime
    read_at: Optional[datetime] = None


class InteractionResult(BaseModel):
    interaction: Interaction
    match: Optional[Match] = None


# ----------------------
# Request payloads
# ----------------------
class ProfilePayload(BaseModel):
    id: int
    username: str
    status: ProfileStatus = ProfileStatus.active


class InteractionPayload(BaseModel):
    actor_id: int
    target_id: int
    kind: InteractionKind


class MessagePayload(BaseModel):
    match_id: int
    sender_id: int
    content: str
