"""MCP Server for voice commands -- exposes the parser, executor and run log as MCP tools."""

import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from mcp.server.fastmcp import FastMCP

from voicecmd.actions.dispatcher import CommandExecutor, describe_command
from voicecmd.actions.validator import clarification_question, is_actionable, missing_fields
from voicecmd.chat.command_extractor import BUSINESS_DIR
from voicecmd.chat.command_parser import parse_command
from voicecmd.session import VoiceSession
from voicecmd.store.client import build_store
from voicecmd.store.runs import list_runs as _list_runs

# Logging to stderr only (stdout reserved for JSON-RPC over stdio transport)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("mcp_server")

mcp = FastMCP(
    "voicecmd",
    instructions="Voice commands for a productivity app: tasks, courses, reading list and goals",
)

_executor: CommandExecutor | None = None


def get_executor() -> CommandExecutor:
    global _executor
    if _executor is None:
        _executor = CommandExecutor(build_store())
    return _executor


# ────────────────────────── Tools ──────────────────────────


@mcp.tool()
async def parse_voice_command(text: str) -> str:
    """Parse a spoken instruction into a structured command without running it.

    Returns JSON with the command (action, entity, parameters, confidence),
    whether it is actionable, any missing fields and a one-line preview.

    Args:
        text: The transcript, e.g. "create task Review Report due tomorrow high priority"
    """
    command = await parse_command(text)
    if command is None:
        return json.dumps({"command": None, "actionable": False})
    return json.dumps({
        "command": command.to_dict(),
        "actionable": is_actionable(command),
        "missing_fields": missing_fields(command.action, command.parameters),
        "preview": describe_command(command),
        "question": clarification_question(command),
    }, ensure_ascii=False, indent=2)


@mcp.tool()
async def run_voice_command(text: str) -> str:
    """Parse, validate and execute a spoken instruction in one step (no confirmation).

    Args:
        text: The transcript to execute
    """
    session = VoiceSession(get_executor(), require_confirmation=False)
    session.start()
    await session.submit_transcript(text)
    return json.dumps(session.snapshot().model_dump(), ensure_ascii=False, indent=2, default=str)


@mcp.tool()
async def list_runs(limit: int = 20, run_type: str | None = None) -> str:
    """List recent voice command runs from the audit log.

    Args:
        limit: Maximum number of runs to return (default 20, max 100)
        run_type: Filter by type (default: all)
    """
    limit = min(max(limit, 1), 100)
    runs = _list_runs(limit=limit, run_type=run_type)
    return json.dumps(runs, ensure_ascii=False, indent=2, default=str)


# ────────────────────────── Resources ──────────────────────────


@mcp.resource("voicecmd://schema")
def get_command_schema() -> str:
    """The JSON schema the semantic parser fills in for every command."""
    return (BUSINESS_DIR / "command_schema.json").read_text(encoding="utf-8")


# ────────────────────────── Entry point ──────────────────────────


if __name__ == "__main__":
    mcp.run(transport="stdio")
