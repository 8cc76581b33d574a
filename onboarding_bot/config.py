from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, TypeVar

from .errors import ConfigurationError
from .utils import parse_id_list, parse_optional_snowflake, parse_snowflake

T = TypeVar("T")

DEFAULT_BUSINESS_NAME = "OptiGrow"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT = 30.0


@dataclass(slots=True)
class TeamConfig:
    """Team members mentioned in the welcome message."""

    founder_ids: List[int] = field(default_factory=list)
    csm_ids: List[int] = field(default_factory=list)
    fulfilment_ids: List[int] = field(default_factory=list)
    operations_ids: List[int] = field(default_factory=list)


@dataclass(slots=True)
class WebhookConfig:
    """Configuration for the optional automation webhook."""

    url: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass(slots=True)
class BotConfig:
    """Aggregate configuration for a bot process."""

    token: str
    guild_id: int
    invite_channel_id: int
    invite_request_channel_id: int
    business_name: str = DEFAULT_BUSINESS_NAME
    start_here_channel_id: Optional[int] = None
    staff_role_ids: List[int] = field(default_factory=list)
    team: TeamConfig = field(default_factory=TeamConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    shared_secret: Optional[str] = None
    port: int = DEFAULT_PORT
    api_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"


def _parse_port(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return DEFAULT_PORT
    try:
        port = int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"PORT must be an integer, got {raw!r}.") from exc
    if not 0 < port < 65536:
        raise ConfigurationError(f"PORT must be between 1 and 65535, got {port}.")
    return port


def _parse_timeout(raw: Optional[str], *, name: str) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}.") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive.")
    return value


def load_config(environ: Optional[Mapping[str, str]] = None) -> BotConfig:
    """Build the bot configuration from environment variables.

    Every problem is collected before raising so a misconfigured deployment
    reports all missing values at once.
    """
    env = os.environ if environ is None else environ
    problems: List[str] = []

    def _get(key: str) -> Optional[str]:
        value = env.get(key)
        if value is None or not value.strip():
            return None
        return value.strip()

    def _attempt(parser: Callable[[], T], default: T) -> T:
        try:
            return parser()
        except ConfigurationError as exc:
            problems.append(str(exc))
            return default

    def _required_id(key: str) -> int:
        raw = _get(key)
        if raw is None:
            problems.append(f"{key} is required.")
            return 0
        return _attempt(lambda: parse_snowflake(raw, name=key), 0)

    token = _get("DISCORD_TOKEN")
    if token is None:
        problems.append("DISCORD_TOKEN is required.")

    guild_id = _required_id("GUILD_ID")
    invite_channel_id = _required_id("INVITE_CHANNEL_ID")
    invite_request_channel_id = _required_id("INVITE_REQUEST_CHANNEL_ID")

    start_here = _attempt(
        lambda: parse_optional_snowflake(_get("START_HERE_CHANNEL_ID"), name="START_HERE_CHANNEL_ID"),
        None,
    )
    staff_role_ids = _attempt(
        lambda: parse_id_list(_get("STAFF_ROLE_IDS"), name="STAFF_ROLE_IDS"), []
    )
    team = TeamConfig(
        founder_ids=_attempt(
            lambda: parse_id_list(_get("FOUNDER_USER_IDS"), name="FOUNDER_USER_IDS"), []
        ),
        csm_ids=_attempt(lambda: parse_id_list(_get("CSM_USER_IDS"), name="CSM_USER_IDS"), []),
        fulfilment_ids=_attempt(
            lambda: parse_id_list(_get("FULFILMENT_USER_IDS"), name="FULFILMENT_USER_IDS"), []
        ),
        operations_ids=_attempt(
            lambda: parse_id_list(_get("OPERATIONS_USER_IDS"), name="OPERATIONS_USER_IDS"), []
        ),
    )
    port = _attempt(lambda: _parse_port(_get("PORT")), DEFAULT_PORT)
    api_timeout = _attempt(
        lambda: _parse_timeout(_get("DISCORD_API_TIMEOUT"), name="DISCORD_API_TIMEOUT"),
        DEFAULT_TIMEOUT,
    )
    webhook_timeout = _attempt(
        lambda: _parse_timeout(_get("WEBHOOK_TIMEOUT"), name="WEBHOOK_TIMEOUT"),
        DEFAULT_TIMEOUT,
    )

    if problems:
        raise ConfigurationError("Invalid configuration: " + " ".join(problems))

    return BotConfig(
        token=token or "",
        guild_id=guild_id,
        invite_channel_id=invite_channel_id,
        invite_request_channel_id=invite_request_channel_id,
        business_name=_get("BUSINESS_NAME") or DEFAULT_BUSINESS_NAME,
        start_here_channel_id=start_here,
        staff_role_ids=staff_role_ids,
        team=team,
        webhook=WebhookConfig(url=_get("ZAPIER_WEBHOOK_URL"), timeout=webhook_timeout),
        shared_secret=_get("ZAPIER_SECRET"),
        port=port,
        api_timeout=api_timeout,
        log_level=(_get("LOG_LEVEL") or "INFO").upper(),
    )
