"""Interactive terminal agent for Entra ID account management."""

import asyncio
import logging
import sys
from typing import TextIO

from .api.app import build_audit_logger, build_directory
from .config import Settings, load_env_file
from .core.invoker import ToolInvoker
from .core.orchestrator import ConversationOrchestrator, OrchestrationError
from .core.registry import ToolRegistry
from .main import setup_logging
from .models.conversation import Conversation
from .prompts import SYSTEM_PROMPT
from .providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

REQUESTER = "cli-agent"
EXIT_COMMANDS = ("exit", "quit")


async def run_agent(
    orchestrator: ConversationOrchestrator,
    stdin: TextIO = sys.stdin,
    stdout: TextIO = sys.stdout,
) -> int:
    """Read requests line by line and print the assistant's answers.

    All turns share one conversation. Returns the number of turns run.
    """
    conversation = Conversation(conversation_id="cli", system_prompt=SYSTEM_PROMPT)
    turns = 0

    print("Entra ID assistant. Type 'exit' to quit.", file=stdout)
    while True:
        stdout.write("\nYou: ")
        stdout.flush()
        line = await asyncio.to_thread(stdin.readline)
        if not line:
            break
        user_input = line.strip()
        if not user_input:
            continue
        if user_input.lower() in EXIT_COMMANDS:
            print("Goodbye!", file=stdout)
            break

        try:
            answer = await orchestrator.run(conversation, user_input, requester_ip=REQUESTER)
        except OrchestrationError as e:
            print(f"\nError: {e}", file=stdout)
            continue
        turns += 1
        print(f"\nAssistant: {answer}", file=stdout)

    return turns


async def _main(settings: Settings) -> None:
    directory = build_directory(settings)
    audit_logger = build_audit_logger(settings)
    provider = OpenAIProvider(
        api_key=settings.openai.api_key,
        default_model=settings.openai.model,
        timeout=settings.openai.timeout,
    )
    orchestrator = ConversationOrchestrator(
        provider, ToolInvoker(ToolRegistry.for_directory(directory), audit_logger)
    )
    try:
        await run_agent(orchestrator)
    finally:
        if audit_logger is not None:
            await audit_logger.close()
        if directory is not None:
            await directory.aclose()


def main():
    """Main entry point."""
    load_env_file()
    settings = Settings.from_env()
    setup_logging("entra-mcp-agent.log", debug=settings.debug)

    try:
        asyncio.run(_main(settings))
    except KeyboardInterrupt:
        logger.info("Agent stopped by user")


if __name__ == "__main__":
    main()
