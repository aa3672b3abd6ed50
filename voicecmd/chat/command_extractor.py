"""OpenAI Tool Calling extractor for spoken productivity commands."""

import json
import logging
import os
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path

import jsonschema
from openai import AsyncOpenAI, BadRequestError, OpenAIError

from ..tools.models import ACTION_SPECS, ParsedCommand
from ..tools.slots import coerce_parameters
from ..utils.timezone import now as local_now, TIMEZONE

logger = logging.getLogger(__name__)

BUSINESS_DIR = Path(__file__).resolve().parent.parent / "business"
PROMPT_DIR = Path(__file__).resolve().parent / "prompt"

TOOL_NAME = "parse_voice_command"

_client: AsyncOpenAI | None = None


class ExtractionError(ValueError):
    """The semantic service gave no usable command."""


def semantic_timeout() -> float:
    return float(os.getenv("SEMANTIC_TIMEOUT_SECONDS", "8"))


def get_openai_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        _client = AsyncOpenAI(api_key=os.getenv("OPENAI_API_KEY"), timeout=semantic_timeout())
    return _client


@lru_cache(maxsize=4)
def load_schema(schema_name: str = "command_schema.json") -> dict:
    with open(BUSINESS_DIR / schema_name, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=4)
def _load_prompt(prompt_name: str = "command_extraction.txt") -> str:
    with open(PROMPT_DIR / prompt_name, "r", encoding="utf-8") as f:
        return f.read().strip()


def _build_tools(schema: dict) -> list[dict]:
    """Build OpenAI tools definition from the JSON schema."""
    # $schema/title are not valid in function parameters
    params = {k: v for k, v in schema.items() if k not in ("$schema", "title")}
    return [
        {
            "type": "function",
            "function": {
                "name": TOOL_NAME,
                "description": "Convert a spoken instruction into one structured productivity command.",
                "parameters": params,
            },
        }
    ]


async def _call_with_tools(client: AsyncOpenAI, model: str, messages: list, tools: list):
    """Call chat completions with tool_choice; fall back to no temperature if model rejects it."""
    kwargs = dict(
        model=model,
        messages=messages,
        tools=tools,
        tool_choice={"type": "function", "function": {"name": TOOL_NAME}},
        temperature=0,
    )
    try:
        return await client.chat.completions.create(**kwargs)
    except BadRequestError as e:
        if "temperature" in str(e):
            logger.info("Model %s rejects temperature=0, retrying without it", model)
            kwargs.pop("temperature")
            return await client.chat.completions.create(**kwargs)
        raise


def _auto_fix(data: dict) -> None:
    """Patch common model slips before schema validation."""
    spec = ACTION_SPECS.get(data.get("action"))
    if spec and data.get("entity") != spec.entity:
        data["entity"] = spec.entity
    if data.get("parameters") is None:
        data["parameters"] = {}
    if isinstance(data.get("confidence"), float):
        data["confidence"] = round(data["confidence"])


def _validate(data: dict, schema: dict) -> None:
    jsonschema.Draft7Validator(schema).validate(data)


def _first_tool_arguments(response) -> str:
    try:
        tool_calls = response.choices[0].message.tool_calls
    except (AttributeError, IndexError) as e:
        raise ExtractionError("Malformed completion response") from e
    if not tool_calls:
        raise ExtractionError("Model did not call the tool")
    return tool_calls[0].function.arguments


async def extract_command(
    transcript: str,
    *,
    now: date | datetime | None = None,
    model: str | None = None,
    client: AsyncOpenAI | None = None,
) -> ParsedCommand:
    """
    Ask the model for a structured command.
    Raises ExtractionError on any service failure or output that does not fit the schema.
    """
    client = client or get_openai_client()
    model = model or os.getenv("OPENAI_COMMAND_MODEL") or os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
    now = now or local_now()
    schema = load_schema()
    tools = _build_tools(schema)

    today = now.date() if isinstance(now, datetime) else now
    system_prompt = _load_prompt().format(
        current_date=today.strftime("%Y-%m-%d"),
        weekday=today.strftime("%A"),
        timezone_name=str(TIMEZONE),
    )
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": transcript},
    ]

    logger.info("Command extraction: model=%s, text=%r", model, transcript[:200])

    try:
        response = await _call_with_tools(client, model, messages, tools)
    except OpenAIError as e:
        raise ExtractionError(f"Semantic service error: {e}") from e

    raw_args = _first_tool_arguments(response)
    logger.debug("Command extraction raw: %s", raw_args[:500])

    try:
        parsed = json.loads(raw_args)
        if not isinstance(parsed, dict):
            raise ExtractionError("Tool arguments are not an object")
        _auto_fix(parsed)
        _validate(parsed, schema)
    except (json.JSONDecodeError, jsonschema.ValidationError) as e:
        raise ExtractionError(f"Invalid tool output: {e}") from e

    action = parsed["action"]
    params = coerce_parameters(action, parsed["parameters"], now, lenient_dates=True)
    return ParsedCommand(
        action=action,
        entity=parsed["entity"],
        parameters=params,
        confidence=parsed["confidence"],
        original_text=transcript,
        source="semantic",
    )
