"""Tests for the member join flow."""

import asyncio

import pytest

from onboarding_bot.attribution import InviteAttributor
from onboarding_bot.onboarding import OnboardingService
from tests.fakes import FakeGateway


@pytest.fixture
def service(registry, provisioner):
    return OnboardingService(registry, provisioner)


class StalledGateway(FakeGateway):
    """Holds ``fetch_invite_usage`` open until ``release`` is set."""

    def __init__(self, usage):
        super().__init__(usage=usage)
        self.release = asyncio.Event()

    async def fetch_invite_usage(self):
        await self.release.wait()
        return await super().fetch_invite_usage()


class TestHandleMemberJoin:
    """End-to-end join scenarios against the fake gateway."""

    @pytest.mark.asyncio
    async def test_mapped_invite_names_the_workspace(self, service, registry, dispatcher):
        """Jordan joins through abc123 and gets 'Jordan - Acme'."""
        registry.register("abc123", "Jordan")
        registry.update_usage("abc123", 4)
        gateway = FakeGateway(usage={"abc123": 5, "xyz999": 2})

        workspace = await service.handle_member_join(
            gateway, member_id=1234567, member_tag="jordan#0", fallback_name="jordan_b"
        )

        assert workspace is not None
        assert workspace.category_name == "Jordan - Acme"
        assert registry.snapshot_usage() == {"abc123": 5, "xyz999": 2}
        assert dispatcher.notifications[0].firstname == "Jordan"
        assert dispatcher.notifications[0].member_id == 1234567

    @pytest.mark.asyncio
    async def test_no_usage_growth_falls_back_to_display_name(self, service, registry):
        """Without a grown invite the member's display name is used."""
        gateway = FakeGateway(usage={})

        workspace = await service.handle_member_join(
            gateway, member_id=1234567, member_tag="taylor#0", fallback_name="Taylor"
        )

        assert workspace.category_name == "Taylor - Acme"

    @pytest.mark.asyncio
    async def test_unmapped_invite_falls_back_to_display_name(self, service, registry):
        """A grown invite without a registered name uses the fallback."""
        registry.update_usage("abc123", 0)
        gateway = FakeGateway(usage={"abc123": 1})

        workspace = await service.handle_member_join(
            gateway, member_id=1, member_tag="t#0", fallback_name="Taylor"
        )

        assert workspace.category_name == "Taylor - Acme"

    @pytest.mark.asyncio
    async def test_fetch_failure_still_provisions_with_fallback(self, service):
        """A failed invite fetch does not block provisioning."""
        gateway = FakeGateway(fail_on=["fetch_invite_usage"])

        workspace = await service.handle_member_join(
            gateway, member_id=1, member_tag="t#0", fallback_name="Taylor"
        )

        assert workspace.category_name == "Taylor - Acme"

    @pytest.mark.asyncio
    async def test_fatal_provisioning_error_is_contained(self, service):
        """A fatal step failure returns None instead of raising."""
        gateway = FakeGateway(fail_on=["create_category"])

        workspace = await service.handle_member_join(
            gateway, member_id=1, member_tag="t#0", fallback_name="Taylor"
        )

        assert workspace is None

    @pytest.mark.asyncio
    async def test_blank_fallback_uses_placeholder(self, service):
        gateway = FakeGateway()

        workspace = await service.handle_member_join(
            gateway, member_id=1, member_tag="t#0", fallback_name="  "
        )

        assert workspace.category_name == "Client - Acme"


class TestWarmInviteCache:
    @pytest.mark.asyncio
    async def test_warm_seeds_registry(self, service, registry):
        """Existing invites are cached on ready."""
        count = await service.warm_invite_cache(FakeGateway(usage={"a": 3, "b": 0}))

        assert count == 2
        assert registry.snapshot_usage() == {"a": 3, "b": 0}

    @pytest.mark.asyncio
    async def test_warm_failure_is_logged_not_raised(self, service, registry):
        count = await service.warm_invite_cache(FakeGateway(fail_on=["fetch_invite_usage"]))

        assert count == 0
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_warm_and_join_reconciliation_are_serialized(self, service, registry):
        """A slow warm-up snapshot cannot overwrite counts written back by a join."""
        stale = StalledGateway(usage={"abc123": 4})
        warm = asyncio.create_task(service.warm_invite_cache(stale))
        await asyncio.sleep(0)

        fresh = FakeGateway(usage={"abc123": 5})
        join = asyncio.create_task(InviteAttributor(registry).reconcile(fresh.fetch_invite_usage))
        await asyncio.sleep(0)
        assert fresh.method_names() == []

        stale.release.set()
        assert await warm == 1
        attribution = await join

        assert attribution.code == "abc123"
        assert registry.snapshot_usage() == {"abc123": 5}
