"""API request/response schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = ""
    history: list[HistoryMessage] = Field(default_factory=list)


class ChatStatusResponse(BaseModel):
    status: bool = True
    message: str


class ParameterInfo(BaseModel):
    type: str
    description: str = ""
    required: bool = True


class CapabilityInfo(BaseModel):
    name: str
    description: str
    parameters: dict[str, ParameterInfo] = {}


class ToolsResponse(BaseModel):
    count: int
    tools: list[CapabilityInfo]
    catalog: str


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "inkagent"
    version: str | None = None
    pid: int | None = None
    tools: list[str] = []
    # Whether configuration is valid (has API key and model)
    config_valid: bool | None = None
    config_errors: list[str] | None = None
