from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Sequence

from .config import TeamConfig
from .errors import (
    ChannelCreationFailed,
    ConfigurationError,
    ContainerCreationFailed,
    DiscordOperationError,
    MessageDeliveryFailed,
    PermissionSetupFailed,
)
from .gateway import MEMBER, ROLE, VisibilityOverwrite, WorkspaceGateway
from .progress import ProgressLogger
from .templates import (
    DEFAULT_CHANNELS,
    ChannelSpec,
    build_substitutions,
    render_welcome_message,
)
from .webhook import JoinNotification, NotificationDispatcher


@dataclass(slots=True)
class MembershipEvent:
    """A single member join, alive only while it is being handled."""

    member_id: int
    member_tag: str
    joined_at: datetime
    resolved_name: str


@dataclass(slots=True)
class ProvisionedWorkspace:
    category_id: int
    category_name: str
    primary_channel_id: int
    channel_ids: List[int] = field(default_factory=list)
    welcome_delivered: bool = False
    notified: bool = False


def build_overwrites(
    everyone_role_id: int,
    member_id: int,
    bot_user_id: int,
    staff_role_ids: Sequence[int] = (),
) -> List[VisibilityOverwrite]:
    """Hide the workspace from everyone except the member, the bot and staff."""
    overwrites = [
        VisibilityOverwrite(everyone_role_id, ROLE, allow=False),
        VisibilityOverwrite(member_id, MEMBER, allow=True),
        VisibilityOverwrite(bot_user_id, MEMBER, allow=True),
    ]
    seen = {everyone_role_id}
    for role_id in staff_role_ids:
        if role_id in seen:
            continue
        seen.add(role_id)
        overwrites.append(VisibilityOverwrite(role_id, ROLE, allow=True))
    return overwrites


class WorkspaceProvisioner:
    """Builds a client's private category and channels, then welcomes them.

    Steps run strictly in order: category, visibility, channels, welcome
    message, webhook. A failure creating the category, setting its
    permissions or creating the primary channel aborts the run. Later
    failures are logged and reflected in the returned workspace.

    Provisioning twice for the same member creates two workspaces.
    """

    def __init__(
        self,
        *,
        business_name: str,
        staff_role_ids: Sequence[int] = (),
        team: Optional[TeamConfig] = None,
        start_here_channel_id: Optional[int] = None,
        channels: Sequence[ChannelSpec] = DEFAULT_CHANNELS,
        dispatcher: Optional[NotificationDispatcher] = None,
        render: Callable[[Mapping[str, str]], str] = render_welcome_message,
        progress: Optional[ProgressLogger] = None,
    ) -> None:
        primaries = [spec for spec in channels if spec.primary]
        if len(primaries) != 1:
            raise ConfigurationError(
                f"Exactly one primary channel is required, got {len(primaries)}."
            )
        self._business_name = business_name
        self._staff_role_ids = list(staff_role_ids)
        self._team = team or TeamConfig()
        self._start_here_channel_id = start_here_channel_id
        self._channels = list(channels)
        self._dispatcher = dispatcher
        self._render = render
        self._progress = progress or ProgressLogger()

    def category_name_for(self, resolved_name: str) -> str:
        return f"{resolved_name} - {self._business_name}"

    async def provision(
        self, gateway: WorkspaceGateway, event: MembershipEvent
    ) -> ProvisionedWorkspace:
        category_name = self.category_name_for(event.resolved_name)
        self._progress.step(f"Creating workspace '{category_name}' for member {event.member_id}...")

        try:
            category_id = await gateway.create_category(category_name)
        except DiscordOperationError as exc:
            raise ContainerCreationFailed(
                f"Could not create category '{category_name}': {exc}", member_id=event.member_id
            ) from exc

        try:
            overwrites = build_overwrites(
                gateway.everyone_role_id,
                event.member_id,
                gateway.bot_user_id,
                self._staff_role_ids,
            )
            await gateway.set_category_overwrites(category_id, overwrites)
        except DiscordOperationError as exc:
            raise PermissionSetupFailed(
                f"Could not restrict category '{category_name}': {exc}", member_id=event.member_id
            ) from exc

        channel_ids: List[int] = []
        primary_channel_id: Optional[int] = None
        for spec in self._channels:
            try:
                channel_id = await self._create_channel(
                    gateway, spec, category_id, overwrites, event
                )
            except ChannelCreationFailed as exc:
                if spec.primary:
                    raise
                self._progress.warning(f"Skipping channel '{spec.name}': {exc}")
                continue
            channel_ids.append(channel_id)
            if spec.primary:
                primary_channel_id = channel_id

        if primary_channel_id is None:
            raise ChannelCreationFailed(
                f"No primary channel was created in '{category_name}'.",
                member_id=event.member_id,
            )
        workspace = ProvisionedWorkspace(
            category_id=category_id,
            category_name=category_name,
            primary_channel_id=primary_channel_id,
            channel_ids=channel_ids,
        )

        try:
            await self._deliver_welcome(gateway, primary_channel_id, event)
        except MessageDeliveryFailed as exc:
            self._progress.error(str(exc))
        else:
            workspace.welcome_delivered = True

        if self._dispatcher is not None:
            workspace.notified = await self._dispatcher.notify(
                JoinNotification(
                    firstname=event.resolved_name,
                    business_name=self._business_name,
                    member_id=event.member_id,
                    member_tag=event.member_tag,
                    category_name=category_name,
                    joined_at=event.joined_at,
                )
            )

        self._progress.success(f"Created category + channels for {event.resolved_name}.")
        return workspace

    async def _create_channel(
        self,
        gateway: WorkspaceGateway,
        spec: ChannelSpec,
        category_id: int,
        overwrites: Sequence[VisibilityOverwrite],
        event: MembershipEvent,
    ) -> int:
        try:
            return await gateway.create_text_channel(spec.name, category_id, overwrites)
        except DiscordOperationError as exc:
            raise ChannelCreationFailed(
                f"Could not create channel '{spec.name}': {exc}", member_id=event.member_id
            ) from exc

    async def _deliver_welcome(
        self, gateway: WorkspaceGateway, channel_id: int, event: MembershipEvent
    ) -> None:
        message = self._render(
            build_substitutions(
                name=event.resolved_name,
                member_id=event.member_id,
                business=self._business_name,
                team=self._team,
                start_here_channel_id=self._start_here_channel_id,
                channels=self._channels,
            )
        )
        try:
            await gateway.send_message(channel_id, message)
        except DiscordOperationError as exc:
            raise MessageDeliveryFailed(
                f"Could not post the welcome message for {event.resolved_name}: {exc}",
                member_id=event.member_id,
            ) from exc
