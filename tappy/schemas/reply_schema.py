"""Reply payloads returned to the chat widget, plus HTTP request/response models."""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class TextReply(BaseModel):
    """A single rendered HTML string."""

    type: Literal["text"] = "text"
    html: str
    source: str = "system"


class YesNoReply(BaseModel):
    """A FAQ answer ending in a yes/no branch question."""

    type: Literal["yes_no"] = "yes_no"
    title: str
    intro: str = ""
    steps: list[str] = Field(default_factory=list)
    question: str


class ReplyOption(BaseModel):
    label: str
    index: int


class OptionsReply(BaseModel):
    """A numbered disambiguation menu."""

    type: Literal["options"] = "options"
    intro: str
    options: list[ReplyOption]


ReplyPayload = Annotated[
    Union[TextReply, YesNoReply, OptionsReply],
    Field(discriminator="type"),
]


class ChatRequest(BaseModel):
    """Request payload for the chat API."""

    message: Optional[str] = None
    session_id: Optional[str] = None
    context: Optional[Literal["sales", "support", "general"]] = None
    reset: bool = False


class ChatResponse(BaseModel):
    """Response payload returned by the chat API."""

    session_id: str
    reply: ReplyPayload
