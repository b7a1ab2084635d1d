"""Pydantic models for the HTTP API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CallToolRequest(BaseModel):
    """Body of POST /call-tool.

    ``name`` and ``arguments`` are checked by the endpoint so a missing one
    gets the same 400 error body as any other bad request.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    arguments: Optional[Dict[str, Any]] = None
    requester_ip: Optional[str] = Field(None, alias="requesterIp")
    authenticated_user: Optional[str] = Field(None, alias="authenticatedUser")


class CallToolResponse(BaseModel):
    success: bool = True
    result: Dict[str, Any]


class ToolDefinition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(..., alias="inputSchema")


class ToolsResponse(BaseModel):
    tools: List[ToolDefinition]


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    conversation_id: Optional[str] = Field(None, alias="conversationId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    conversation_id: str = Field(..., alias="conversationId")


class ClearRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: Optional[str] = Field(None, alias="conversationId")


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class AuditHealthResponse(BaseModel):
    status: str
    immudb: str


class LogsResponse(BaseModel):
    count: int
    logs: List[Dict[str, Any]]
