"""Shared fixtures for the onboarding bot tests."""

from __future__ import annotations

import pytest

from onboarding_bot.config import TeamConfig
from onboarding_bot.provisioner import WorkspaceProvisioner
from onboarding_bot.registry import InviteRegistry
from tests.fakes import FakeGateway, RecordingDispatcher


@pytest.fixture
def registry() -> InviteRegistry:
    return InviteRegistry()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def team() -> TeamConfig:
    return TeamConfig(
        founder_ids=[11111, 22222],
        csm_ids=[33333],
        fulfilment_ids=[44444],
        operations_ids=[],
    )


@pytest.fixture
def provisioner(dispatcher: RecordingDispatcher, team: TeamConfig) -> WorkspaceProvisioner:
    return WorkspaceProvisioner(
        business_name="Acme",
        staff_role_ids=[700001],
        team=team,
        start_here_channel_id=800001,
        dispatcher=dispatcher,
    )
