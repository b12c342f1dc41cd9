"""Canonical message, request and chunk models shared by every provider."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Message roles in the conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single conversation message."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: MessageRole
    content: str

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content)

    def to_wire(self) -> dict:
        return {"role": self.role, "content": self.content}


class ProviderCredentials(BaseModel):
    """Caller-supplied credentials; missing values fall back to configured defaults."""
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    base_url: Optional[str] = None


class CompletionRequest(BaseModel):
    """One chat completion call, built once per inbound request."""
    model_config = ConfigDict(frozen=True)

    model: str
    messages: List[Message]
    provider: str
    credentials: ProviderCredentials = Field(default_factory=ProviderCredentials)
    stream: bool = False
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


class ChunkDelta(BaseModel):
    content: Optional[str] = None
    role: Optional[str] = None


class ChunkChoice(BaseModel):
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    index: Optional[int] = None
    finish_reason: Optional[str] = None


class CompletionChunk(BaseModel):
    """One increment of a streamed response in canonical form."""

    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[ChunkChoice] = Field(default_factory=list)

    @property
    def content(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""
