"""Schemas for the vault assistant"""
from pydantic import BaseModel, Field
from typing import List, Literal


class AssistantTurn(BaseModel):
    """Earlier turn of the assistant conversation"""
    role: Literal["user", "model"]
    text: str = Field(..., max_length=10000)


class AssistantRequest(BaseModel):
    """Question for the vault assistant"""
    message: str = Field(..., min_length=1, max_length=4000, description="The user's question")
    history: List[AssistantTurn] = Field(default_factory=list, max_length=50)


class AssistantResponse(BaseModel):
    """Assistant reply"""
    reply: str
    files_in_context: int
