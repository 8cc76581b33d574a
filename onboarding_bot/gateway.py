from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Protocol, Sequence, TypeVar

import discord

from .errors import DiscordOperationError, PermissionDenied, RateLimitError
from .utils import truncate_channel_name, with_rate_limit_retry

T = TypeVar("T")

ROLE = "role"
MEMBER = "member"


@dataclass(frozen=True, slots=True)
class VisibilityOverwrite:
    """A platform-neutral permission overwrite.

    Deny entries hide the channel. Allow entries grant view and send.
    """

    target_id: int
    target_kind: str
    allow: bool


@dataclass(frozen=True, slots=True)
class InviteLink:
    code: str
    url: str


class WorkspaceGateway(Protocol):
    """The Discord capabilities the onboarding logic depends on."""

    @property
    def bot_user_id(self) -> int: ...

    @property
    def everyone_role_id(self) -> int: ...

    async def create_category(self, name: str) -> int: ...

    async def set_category_overwrites(
        self, category_id: int, overwrites: Sequence[VisibilityOverwrite]
    ) -> None: ...

    async def create_text_channel(
        self, name: str, category_id: int, overwrites: Sequence[VisibilityOverwrite]
    ) -> int: ...

    async def send_message(
        self, channel_id: int, content: str, *, view: Optional[discord.ui.View] = None
    ) -> None: ...

    async def fetch_invite_usage(self) -> Dict[str, int]: ...

    async def create_invite(
        self, channel_id: int, *, max_uses: int, max_age: int, reason: Optional[str] = None
    ) -> InviteLink: ...


def to_permission_overwrites(
    overwrites: Sequence[VisibilityOverwrite],
) -> Dict[discord.Object, discord.PermissionOverwrite]:
    mapping: Dict[discord.Object, discord.PermissionOverwrite] = {}
    for overwrite in overwrites:
        target_type = discord.Role if overwrite.target_kind == ROLE else discord.Member
        target = discord.Object(id=overwrite.target_id, type=target_type)
        if overwrite.allow:
            permission = discord.PermissionOverwrite(view_channel=True, send_messages=True)
        else:
            permission = discord.PermissionOverwrite(view_channel=False)
        mapping[target] = permission
    return mapping


class DiscordGateway:
    """:class:`WorkspaceGateway` backed by a connected discord.py client.

    Every call is retried on rate limits and bounded by ``timeout`` seconds.
    Failures surface as :class:`DiscordOperationError`.
    """

    def __init__(
        self,
        client: discord.Client,
        guild: discord.Guild,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._client = client
        self._guild = guild
        self._timeout = timeout

    @property
    def bot_user_id(self) -> int:
        if self._client.user is None:
            raise DiscordOperationError("The bot user is not available before login.")
        return self._client.user.id

    @property
    def everyone_role_id(self) -> int:
        return self._guild.default_role.id

    async def _call(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        try:
            return await asyncio.wait_for(with_rate_limit_retry(operation), timeout=self._timeout)
        except discord.Forbidden as exc:
            raise PermissionDenied(f"Discord denied the request while {description}.") from exc
        except discord.HTTPException as exc:
            raise DiscordOperationError(
                f"Discord API responded with status {exc.status} while {description}."
            ) from exc
        except asyncio.TimeoutError as exc:
            raise DiscordOperationError(
                f"Timed out after {self._timeout:g}s while {description}."
            ) from exc
        except RateLimitError as exc:
            raise DiscordOperationError(f"{exc} ({description})") from exc

    async def _resolve_channel(self, channel_id: int) -> discord.abc.GuildChannel:
        channel = self._guild.get_channel(channel_id)
        if channel is not None:
            return channel
        fetched = await self._call(
            lambda: self._client.fetch_channel(channel_id), f"fetching channel {channel_id}"
        )
        if not isinstance(fetched, discord.abc.GuildChannel):
            raise DiscordOperationError(f"Channel {channel_id} is not a guild channel.")
        return fetched

    async def create_category(self, name: str) -> int:
        category = await self._call(
            lambda: self._guild.create_category(
                truncate_channel_name(name), reason="Client onboarding"
            ),
            f"creating category '{name}'",
        )
        return category.id

    async def set_category_overwrites(
        self, category_id: int, overwrites: Sequence[VisibilityOverwrite]
    ) -> None:
        category = await self._resolve_channel(category_id)
        await self._call(
            lambda: category.edit(overwrites=to_permission_overwrites(overwrites)),
            f"setting permissions on category {category_id}",
        )

    async def create_text_channel(
        self, name: str, category_id: int, overwrites: Sequence[VisibilityOverwrite]
    ) -> int:
        category = await self._resolve_channel(category_id)
        if not isinstance(category, discord.CategoryChannel):
            raise DiscordOperationError(f"Channel {category_id} is not a category.")
        channel = await self._call(
            lambda: self._guild.create_text_channel(
                truncate_channel_name(name),
                category=category,
                overwrites=to_permission_overwrites(overwrites),
            ),
            f"creating channel '{name}'",
        )
        return channel.id

    async def send_message(
        self, channel_id: int, content: str, *, view: Optional[discord.ui.View] = None
    ) -> None:
        channel = await self._resolve_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise DiscordOperationError(f"Channel {channel_id} cannot receive messages.")
        if view is None:
            await self._call(lambda: channel.send(content), f"sending a message to {channel_id}")
        else:
            await self._call(
                lambda: channel.send(content, view=view), f"sending a message to {channel_id}"
            )

    async def fetch_invite_usage(self) -> Dict[str, int]:
        invites = await self._call(self._guild.invites, "fetching guild invites")
        return {invite.code: invite.uses or 0 for invite in invites}

    async def create_invite(
        self, channel_id: int, *, max_uses: int, max_age: int, reason: Optional[str] = None
    ) -> InviteLink:
        channel = await self._resolve_channel(channel_id)
        invite = await self._call(
            lambda: channel.create_invite(
                max_uses=max_uses, max_age=max_age, unique=True, reason=reason
            ),
            f"creating an invite on channel {channel_id}",
        )
        return InviteLink(code=invite.code, url=invite.url)
