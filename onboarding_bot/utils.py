from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, List, Optional, TypeVar

import discord

from .errors import ConfigurationError, InvalidInput, RateLimitError

T = TypeVar("T")


SNOWFLAKE_REGEX = re.compile(r"\d{5,25}")
CHANNEL_NAME_LIMIT = 100


def parse_snowflake(raw: str, *, name: str) -> int:
    """Parse a Discord identifier from configuration text."""
    value = raw.strip()
    if not SNOWFLAKE_REGEX.fullmatch(value):
        raise ConfigurationError(f"{name} must be a numeric Discord ID, got {raw!r}.")
    return int(value)


def parse_optional_snowflake(raw: Optional[str], *, name: str) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    return parse_snowflake(raw, name=name)


def parse_id_list(raw: Optional[str], *, name: str) -> List[int]:
    """Parse a comma-separated list of Discord IDs, skipping blanks and duplicates."""
    ids: List[int] = []
    for token in (raw or "").split(","):
        if not token.strip():
            continue
        value = parse_snowflake(token, name=name)
        if value not in ids:
            ids.append(value)
    return ids


def clean_name(raw: Optional[str], *, field: str) -> str:
    """Trim a human-entered value, rejecting it if nothing is left."""
    cleaned = (raw or "").strip()
    if not cleaned:
        raise InvalidInput(f"{field} cannot be empty.")
    return cleaned


def truncate_channel_name(name: str) -> str:
    return name[:CHANNEL_NAME_LIMIT]


async def with_rate_limit_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int = 5,
    base_delay: float = 2.0,
    backoff_factor: float = 2.0,
) -> T:
    delay = base_delay
    for attempt in range(retries):
        try:
            return await operation()
        except discord.HTTPException as exc:
            if exc.status == 429 and attempt < retries - 1:
                await asyncio.sleep(delay)
                delay *= backoff_factor
                continue
            raise
    raise RateLimitError("Exceeded maximum retries due to rate limits.")
