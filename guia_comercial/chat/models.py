from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class StartConversationRequest(BaseModel):
    client_id: str = Field(..., min_length=1)
    business_id: str = Field(..., min_length=1)


class SendMessageRequest(BaseModel):
    conversation_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=2000)


class MarkReadRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class ParticipantRole(str, Enum):
    client = "client"
    merchant = "merchant"


class ThreadState(str, Enum):
    idle = "idle"
    loading = "loading"
    loaded = "loaded"
