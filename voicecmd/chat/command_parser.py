"""Semantic-first command parsing with the pattern library as fallback."""

import asyncio
import logging
import os
from datetime import date, datetime
from typing import Awaitable, Callable

from .command_extractor import ExtractionError, extract_command, semantic_timeout
from ..tools.models import ParsedCommand
from ..tools.nlp import match_command
from ..utils.timezone import now as local_now

logger = logging.getLogger(__name__)

SEMANTIC_CONFIDENCE_THRESHOLD = 70

Extractor = Callable[..., Awaitable[ParsedCommand]]


def semantic_enabled() -> bool:
    return bool(os.getenv("OPENAI_API_KEY"))


async def _try_semantic(
    transcript: str, now: date | datetime, extractor: Extractor, timeout: float
) -> ParsedCommand | None:
    try:
        return await asyncio.wait_for(extractor(transcript, now=now), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Semantic parse timed out after %.1fs, using patterns", timeout)
    except ExtractionError as e:
        logger.warning("Semantic parse failed, using patterns: %s", e)
    except Exception:
        logger.exception("Semantic parser crashed, using patterns")
    return None


async def parse_command(
    transcript: str,
    *,
    now: date | datetime | None = None,
    extractor: Extractor | None = None,
    timeout: float | None = None,
) -> ParsedCommand | None:
    """
    Parse a transcript into a command.

    The semantic result wins when it is confident enough; otherwise the pattern
    matcher is tried, and a low-confidence semantic result is only returned when
    no pattern matches. Returns None when neither path understands the text.
    """
    if not transcript or not transcript.strip():
        return None
    now = now or local_now()

    semantic = None
    if extractor is None and not semantic_enabled():
        logger.info("OPENAI_API_KEY not set, pattern matching only")
    else:
        semantic = await _try_semantic(
            transcript,
            now,
            extractor or extract_command,
            timeout if timeout is not None else semantic_timeout(),
        )
        if semantic and semantic.confidence >= SEMANTIC_CONFIDENCE_THRESHOLD:
            return semantic
        if semantic:
            logger.info(
                "Semantic confidence %d below %d for %r, trying patterns",
                semantic.confidence, SEMANTIC_CONFIDENCE_THRESHOLD, transcript,
            )

    fallback = match_command(transcript, now)
    if fallback:
        return fallback
    return semantic
