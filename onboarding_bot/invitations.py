from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import discord
from discord import app_commands

from .errors import BotNotReady, OnboardingError, Unauthorized
from .gateway import WorkspaceGateway
from .progress import ProgressLogger
from .registry import InviteRegistry
from .utils import clean_name

GENERATE_INVITE_ID = "onboarding:generate-invite"
INVITE_MAX_USES = 1
INVITE_MAX_AGE = 7 * 24 * 60 * 60


@dataclass(slots=True)
class CreatedInvite:
    code: str
    url: str
    firstname: str


def has_staff_role(role_ids: Iterable[int], staff_role_ids: Sequence[int]) -> bool:
    """Any member is staff when no staff roles are configured."""
    if not staff_role_ids:
        return True
    return not set(role_ids).isdisjoint(staff_role_ids)


def member_role_ids(user: object) -> list[int]:
    return [role.id for role in getattr(user, "roles", ())]


class InvitationManager:
    """Creates single-use client invites and records who they are for."""

    def __init__(
        self,
        registry: InviteRegistry,
        *,
        invite_channel_id: int,
        staff_role_ids: Sequence[int] = (),
        progress: Optional[ProgressLogger] = None,
    ) -> None:
        self._registry = registry
        self._invite_channel_id = invite_channel_id
        self._staff_role_ids = list(staff_role_ids)
        self._progress = progress or ProgressLogger()
        self._gateway: Optional[WorkspaceGateway] = None

    @property
    def progress(self) -> ProgressLogger:
        return self._progress

    def attach(self, gateway: WorkspaceGateway) -> None:
        self._gateway = gateway

    @property
    def gateway(self) -> WorkspaceGateway:
        if self._gateway is None:
            raise BotNotReady("The bot is not connected to Discord yet.")
        return self._gateway

    def is_staff(self, role_ids: Iterable[int]) -> bool:
        return has_staff_role(role_ids, self._staff_role_ids)

    def ensure_staff(self, role_ids: Iterable[int]) -> None:
        if not self.is_staff(role_ids):
            raise Unauthorized("You need a staff role to create client invites.")

    async def create_client_invite(
        self, firstname: str, requested_by: Optional[str] = None
    ) -> CreatedInvite:
        name = clean_name(firstname, field="Client first name")
        reason = f"Client invite for {name}"
        if requested_by:
            reason += f" (requested by {requested_by})"
        link = await self.gateway.create_invite(
            self._invite_channel_id,
            max_uses=INVITE_MAX_USES,
            max_age=INVITE_MAX_AGE,
            reason=reason,
        )
        self._registry.register(link.code, name)
        self._progress.success(f"Mapped {link.code} → {name}")
        return CreatedInvite(code=link.code, url=link.url, firstname=name)


async def _reply(interaction: discord.Interaction, message: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


async def deliver_invite(
    manager: InvitationManager, interaction: discord.Interaction, firstname: str
) -> None:
    try:
        manager.ensure_staff(member_role_ids(interaction.user))
        await interaction.response.defer(ephemeral=True, thinking=True)
        created = await manager.create_client_invite(firstname, requested_by=str(interaction.user))
    except OnboardingError as exc:
        await _reply(interaction, f"❌ {exc}")
        return
    await _reply(interaction, f"✅ Invite for **{created.firstname}**: {created.url}")


class ClientNameModal(discord.ui.Modal, title="Generate client invite"):
    firstname = discord.ui.TextInput(
        label="Client first name",
        placeholder="e.g. Jordan",
        required=True,
        max_length=80,
    )

    def __init__(self, manager: InvitationManager) -> None:
        super().__init__()
        self._manager = manager

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await deliver_invite(self._manager, interaction, self.firstname.value)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        self._manager.progress.error(f"Invite modal failed: {error}")
        await _reply(interaction, "❌ Something went wrong while creating the invite.")


class InviteRequestView(discord.ui.View):
    """Persistent prompt with a button that opens :class:`ClientNameModal`."""

    def __init__(self, manager: InvitationManager) -> None:
        super().__init__(timeout=None)
        self._manager = manager

    @discord.ui.button(
        label="Generate invite",
        emoji="🔗",
        style=discord.ButtonStyle.primary,
        custom_id=GENERATE_INVITE_ID,
    )
    async def generate_invite(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ) -> None:
        try:
            self._manager.ensure_staff(member_role_ids(interaction.user))
        except Unauthorized as exc:
            await _reply(interaction, f"❌ {exc}")
            return
        await interaction.response.send_modal(ClientNameModal(self._manager))


def build_invite_command(manager: InvitationManager) -> app_commands.Command:
    @app_commands.command(name="create-invite", description="Create a single-use client invite")
    @app_commands.describe(firstname="Client first name used to name their workspace")
    async def create_invite(interaction: discord.Interaction, firstname: str) -> None:
        await deliver_invite(manager, interaction, firstname)

    return create_invite
