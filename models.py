from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, Literal, List


class ContentBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: List[ContentBlock]
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResponse":
        return cls(content=[ContentBlock(text=text)], is_error=is_error)


class ToolCallRequest(BaseModel):
    arguments: Optional[Dict[str, Any]] = Field(default_factory=dict)


class SessionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    operation: str
    file: str
    success: bool
    error: Optional[str] = None
    tags: Dict[str, Any] = Field(default_factory=dict)

    @property
    def language(self) -> str:
        return str(self.tags.get("language") or "Unknown")


class SessionHistory(BaseModel):
    total: int
    entries: List[SessionEntry]
    last_success: Optional[SessionEntry] = None
