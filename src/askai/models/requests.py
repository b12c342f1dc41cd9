"""Inbound request bodies for the ask-ai endpoints."""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AskAIBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider: Optional[str] = None
    model: Optional[str] = None
    prompt: Optional[str] = None
    html: Optional[str] = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    max_tokens: Optional[int] = Field(default=None, gt=0)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    lang: Optional[str] = None


class GenerationBody(AskAIBody):
    """POST body: initial streamed generation."""

    redesign_markdown: Optional[str] = Field(default=None, alias="redesignMarkdown")


class EditBody(AskAIBody):
    """PUT body: buffered follow-up edit."""

    previous_prompt: Optional[str] = Field(default=None, alias="previousPrompt")
    selected_element_html: Optional[str] = Field(default=None, alias="selectedElementHtml")


@dataclass(frozen=True)
class Caller:
    """Who is calling: the rate-limit key and whether a session credential was presented."""

    client_key: str
    authenticated: bool = False
