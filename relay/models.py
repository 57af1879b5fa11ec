"""
Pydantic models for the relay API.
"""
from typing import Optional
from pydantic import BaseModel, Field


class RelayMessageRequest(BaseModel):
    """Message to relay to ChatGPT"""
    user_id: str = Field(min_length=1)
    content: str
    timeout: Optional[float] = Field(default=None, gt=0)  # seconds, defaults to TASK_TIMEOUT


class RelayMessageResponse(BaseModel):
    """Reply from ChatGPT"""
    user_id: str
    reply: str


class RelayErrorResponse(BaseModel):
    error: str
    type: str
