from __future__ import annotations

from typing import Optional

import discord
from discord import app_commands

from .config import BotConfig
from .errors import BotNotReady, DiscordOperationError
from .gateway import DiscordGateway
from .invitations import InvitationManager, InviteRequestView, build_invite_command
from .onboarding import OnboardingService
from .progress import ProgressLogger
from .provisioner import WorkspaceProvisioner
from .registry import InviteRegistry
from .templates import render_invite_prompt
from .webhook import NotificationDispatcher


def member_tag(user: discord.abc.User) -> str:
    return f"{user.name}#{user.discriminator}"


class OnboardingClient(discord.Client):
    """Discord connection that onboards every member joining the configured guild."""

    def __init__(
        self,
        config: BotConfig,
        *,
        registry: InviteRegistry,
        dispatcher: Optional[NotificationDispatcher] = None,
        progress: Optional[ProgressLogger] = None,
        intents: Optional[discord.Intents] = None,
    ) -> None:
        intents = intents or discord.Intents.default()
        intents.guilds = True
        intents.members = True
        intents.invites = True
        super().__init__(intents=intents)
        self.tree = app_commands.CommandTree(self)
        self._config = config
        self._progress = progress or ProgressLogger()
        self._registry = registry
        provisioner = WorkspaceProvisioner(
            business_name=config.business_name,
            staff_role_ids=config.staff_role_ids,
            team=config.team,
            start_here_channel_id=config.start_here_channel_id,
            dispatcher=dispatcher,
            progress=self._progress,
        )
        self._onboarding = OnboardingService(registry, provisioner, self._progress)
        self._invitations = InvitationManager(
            registry,
            invite_channel_id=config.invite_channel_id,
            staff_role_ids=config.staff_role_ids,
            progress=self._progress,
        )
        self._gateway: Optional[DiscordGateway] = None
        self._prompt_posted = False

    @property
    def guild_object(self) -> discord.Object:
        return discord.Object(id=self._config.guild_id)

    async def setup_hook(self) -> None:
        self.add_view(InviteRequestView(self._invitations))
        self.tree.add_command(build_invite_command(self._invitations), guild=self.guild_object)

    async def on_ready(self) -> None:
        self._progress.success(f"Logged in as {self.user}.")
        guild = self.get_guild(self._config.guild_id)
        if guild is None:
            self._progress.warning("No guild found. Invite caching skipped.")
            return

        self._gateway = DiscordGateway(self, guild, timeout=self._config.api_timeout)
        self._invitations.attach(self._gateway)
        await self._onboarding.warm_invite_cache(self._gateway)

        try:
            await self.tree.sync(guild=self.guild_object)
        except discord.HTTPException as exc:
            self._progress.error(f"Failed to register the invite command (status {exc.status}).")

        if not self._prompt_posted:
            try:
                await self.post_invite_prompt()
            except DiscordOperationError as exc:
                self._progress.error(f"Could not post the invite button: {exc}")

    async def on_invite_create(self, invite: discord.Invite) -> None:
        if invite.guild is None or invite.guild.id != self._config.guild_id:
            return
        self._registry.update_usage(invite.code, invite.uses or 0)

    async def on_member_join(self, member: discord.Member) -> None:
        if member.guild.id != self._config.guild_id:
            return
        gateway = self._gateway or DiscordGateway(
            self, member.guild, timeout=self._config.api_timeout
        )
        await self._onboarding.handle_member_join(
            gateway,
            member_id=member.id,
            member_tag=member_tag(member),
            fallback_name=member.display_name or member.name,
            joined_at=member.joined_at,
        )

    async def post_invite_prompt(self) -> None:
        if not self.is_ready() or self._gateway is None:
            raise BotNotReady("The bot is not connected to Discord yet.")
        await self._gateway.send_message(
            self._config.invite_request_channel_id,
            render_invite_prompt(self._config.business_name),
            view=InviteRequestView(self._invitations),
        )
        self._prompt_posted = True
        self._progress.success("Posted the invite button prompt.")
