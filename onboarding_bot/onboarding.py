from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .attribution import Attribution, InviteAttributor, resolve_name
from .errors import DiscordOperationError, ProvisioningError
from .gateway import WorkspaceGateway
from .progress import ProgressLogger
from .provisioner import MembershipEvent, ProvisionedWorkspace, WorkspaceProvisioner
from .registry import InviteRegistry


class OnboardingService:
    """Turns a member join into a provisioned client workspace."""

    def __init__(
        self,
        registry: InviteRegistry,
        provisioner: WorkspaceProvisioner,
        progress: Optional[ProgressLogger] = None,
    ) -> None:
        self._registry = registry
        self._provisioner = provisioner
        self._progress = progress or ProgressLogger()
        self._attributor = InviteAttributor(registry, self._progress)

    @property
    def registry(self) -> InviteRegistry:
        return self._registry

    async def warm_invite_cache(self, gateway: WorkspaceGateway) -> int:
        async with self._registry.reconciliation():
            try:
                usage = await gateway.fetch_invite_usage()
            except DiscordOperationError as exc:
                self._progress.error(f"Error caching invites: {exc}")
                return 0
            self._registry.warm(usage)
        self._progress.success(f"Cached {len(usage)} existing invites.")
        return len(usage)

    async def resolve_member_name(
        self, gateway: WorkspaceGateway, member_tag: str, fallback_name: Optional[str]
    ) -> str:
        attribution: Attribution = await self._attributor.reconcile(gateway.fetch_invite_usage)
        name = resolve_name(self._registry, attribution.code, fallback_name)
        if attribution.code is None:
            self._progress.warning(
                f"Could not find used invite for {member_tag}, falling back to '{name}'."
            )
        elif self._registry.lookup(attribution.code) is None:
            self._progress.warning(
                f"No firstname mapped for invite {attribution.code}, falling back to '{name}'."
            )
        else:
            self._progress.info(f"Invite {attribution.code} matched to firstname: {name}")
        return name

    async def handle_member_join(
        self,
        gateway: WorkspaceGateway,
        *,
        member_id: int,
        member_tag: str,
        fallback_name: Optional[str],
        joined_at: Optional[datetime] = None,
    ) -> Optional[ProvisionedWorkspace]:
        """Attribute, resolve and provision; fatal step failures are logged, not raised."""
        name = await self.resolve_member_name(gateway, member_tag, fallback_name)
        event = MembershipEvent(
            member_id=member_id,
            member_tag=member_tag,
            joined_at=joined_at or datetime.now(timezone.utc),
            resolved_name=name,
        )
        try:
            return await self._provisioner.provision(gateway, event)
        except ProvisioningError as exc:
            self._progress.error(
                f"Provisioning failed for member {exc.member_id} at step {exc.step}: {exc}"
                f" (cause: {exc.__cause__!r})"
            )
            return None
