"""
FastAPI application for the Entra MCP server.

Exposes:
- the tool protocol (/tools, /call-tool) used by MCP clients
- the chat endpoints (/api/chat, /api/clear) driving the orchestrator
- the audit log read endpoints (/api/logs, /api/tables, /api/health)
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import ConfigurationError, Settings
from ..core.invoker import ToolInvoker
from ..core.orchestrator import ConversationOrchestrator, OrchestrationError
from ..core.registry import ToolRegistry
from ..directory.base import DirectoryClient
from ..directory.graph import GraphDirectory
from ..providers.base import LLMProvider
from ..providers.openai_provider import OpenAIProvider
from ..services.audit import AuditLogger, AuditLogReader
from ..services.conversations import ConversationStore
from ..tools.base import ToolArgumentError, ToolError, UnknownToolError
from .schemas import (
    AuditHealthResponse,
    CallToolRequest,
    CallToolResponse,
    ChatRequest,
    ChatResponse,
    ClearRequest,
    HealthResponse,
    LogsResponse,
    ToolsResponse,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def build_directory(settings: Settings) -> Optional[DirectoryClient]:
    """Create the Graph client, or None when Azure credentials are missing."""
    try:
        return GraphDirectory(
            settings.azure.tenant_id, settings.azure.client_id, settings.azure.client_secret
        )
    except ConfigurationError as e:
        logger.error(f"Directory service not initialized: {e}")
        return None


def build_audit_logger(settings: Settings) -> Optional[AuditLogger]:
    """Create the audit logger, or None when immudb settings are missing."""
    try:
        return AuditLogger(settings.immudb)
    except ConfigurationError as e:
        logger.error(f"Audit logging not initialized: {e}")
        return None


def _requester_ip(request: Request, supplied: Optional[str]) -> str:
    if supplied:
        return supplied
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def create_app(
    settings: Optional[Settings] = None,
    *,
    directory: Optional[DirectoryClient] = None,
    provider: Optional[LLMProvider] = None,
    audit_logger: Optional[AuditLogger] = None,
    conversations: Optional[ConversationStore] = None,
) -> FastAPI:
    """Build the application.

    Components not passed in are built from ``settings`` (read from the
    environment when omitted). A component whose settings are incomplete is
    left out and the endpoints that need it report the failure.
    """
    settings = settings or Settings.from_env()

    if directory is None:
        directory = build_directory(settings)
    if audit_logger is None:
        audit_logger = build_audit_logger(settings)
    if provider is None:
        provider = OpenAIProvider(
            api_key=settings.openai.api_key,
            default_model=settings.openai.model,
            timeout=settings.openai.timeout,
        )
    if conversations is None:
        conversations = ConversationStore()

    registry = ToolRegistry.for_directory(directory)
    invoker = ToolInvoker(registry, audit_logger)
    orchestrator = ConversationOrchestrator(provider, invoker)
    log_reader = AuditLogReader(audit_logger) if audit_logger is not None else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Entra MCP server v{__version__} starting")
        logger.info(f"Tools: {', '.join(registry.list_tools())}")
        if directory is None:
            logger.warning("Directory tools will fail until Azure credentials are configured")
        if not provider.is_available():
            logger.warning(f"Provider {provider.name} is not configured - chat requests will fail")
        if audit_logger is None or not audit_logger.enabled:
            logger.warning("Audit logging is disabled - account changes will not be recorded")

        yield

        logger.info("Entra MCP server shutting down")
        if audit_logger is not None:
            try:
                await audit_logger.close()
            except Exception as e:
                logger.warning(f"Error closing audit logger: {e}")
        if directory is not None:
            await directory.aclose()

    app = FastAPI(
        title="Entra MCP Server",
        description="Directory tools for Microsoft Entra ID with an immudb audit trail.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.invoker = invoker
    app.state.orchestrator = orchestrator
    app.state.conversations = conversations
    app.state.audit_logger = audit_logger
    app.state.log_reader = log_reader

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "malformed body") if errors else "malformed body"
        return _error(400, f"Invalid request: {detail}")

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace(
                "+00:00", "Z"
            ),
        )

    @app.get("/tools", response_model=ToolsResponse)
    async def list_tools():
        return {"tools": registry.get_mcp_tool_definitions()}

    @app.post("/call-tool", response_model=CallToolResponse)
    async def call_tool(body: CallToolRequest, request: Request):
        if not body.name or body.arguments is None:
            return _error(400, "name and arguments are required")

        try:
            output = await invoker.invoke_and_audit(
                body.name,
                body.arguments,
                requester_ip=_requester_ip(request, body.requester_ip),
                authenticated_user=body.authenticated_user,
            )
        except (UnknownToolError, ToolArgumentError) as e:
            return _error(400, str(e))
        except ToolError as e:
            return _error(500, str(e))
        except Exception as e:
            logger.error(f"Unexpected error calling {body.name}: {e}", exc_info=True)
            return _error(500, str(e))

        return CallToolResponse(success=True, result=output.to_dict())

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(body: ChatRequest, request: Request):
        if not body.message:
            return _error(400, "Message is required")

        conversation = conversations.get_or_create(body.conversation_id)
        try:
            async with conversations.lock(conversation.conversation_id):
                answer = await orchestrator.run(
                    conversation,
                    body.message,
                    requester_ip=_requester_ip(request, None),
                )
        except OrchestrationError as e:
            return _error(500, str(e))
        except Exception as e:
            logger.error(f"Chat error: {e}", exc_info=True)
            return _error(500, str(e))

        return ChatResponse(response=answer, conversation_id=conversation.conversation_id)

    @app.post("/api/clear")
    async def clear(body: ClearRequest):
        if body.conversation_id:
            conversations.delete(body.conversation_id)
        return {"status": "cleared"}

    @app.get("/api/logs", response_model=LogsResponse)
    async def audit_logs():
        if log_reader is None or not await log_reader.is_available():
            return _error(503, "immuDB not connected")
        try:
            logs = await log_reader.latest()
        except Exception as e:
            logger.error(f"Failed to read audit logs: {e}")
            return _error(500, str(e))
        return LogsResponse(count=len(logs), logs=logs)

    @app.get("/api/tables")
    async def audit_tables():
        if log_reader is None or not await log_reader.is_available():
            return _error(503, "immuDB not connected")
        try:
            return {"tables": await log_reader.tables()}
        except Exception as e:
            return _error(500, str(e))

    @app.get("/api/health", response_model=AuditHealthResponse)
    async def audit_health():
        connected = log_reader is not None and await log_reader.is_available()
        return AuditHealthResponse(
            status="ok" if connected else "disconnected",
            immudb="connected" if connected else "not connected",
        )

    return app
