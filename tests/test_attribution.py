"""Unit tests for invite attribution and name resolution."""

import asyncio

import pytest

from onboarding_bot.attribution import (
    DEFAULT_CLIENT_NAME,
    InviteAttributor,
    attribute,
    find_candidates,
    resolve_name,
)
from onboarding_bot.errors import DiscordOperationError


class TestAttribute:
    """Tests for the pure snapshot diff."""

    def test_single_increment_is_attributed(self):
        """The only invite whose usage grew by one is the used one."""
        previous = {"a": 3, "b": 7, "c": 0}
        current = {"a": 3, "b": 8, "c": 0}

        assert attribute(previous, current) == "b"

    def test_identical_snapshots_attribute_nothing(self):
        """No growth means no attribution."""
        snapshot = {"a": 3, "b": 7}

        assert attribute(snapshot, dict(snapshot)) is None

    def test_new_code_with_uses_counts_from_zero(self):
        """Codes missing from the previous snapshot start at zero."""
        assert attribute({}, {"fresh": 1}) == "fresh"

    def test_new_code_with_zero_uses_is_ignored(self):
        """A brand new unused invite is not a candidate."""
        assert attribute({"a": 1}, {"a": 1, "fresh": 0}) is None

    def test_decrease_is_not_attributed(self):
        """Shrinking counts never count as a use."""
        assert attribute({"a": 5}, {"a": 2}) is None

    def test_tie_break_picks_last_in_enumeration_order(self):
        """With several grown invites the last enumerated one wins."""
        previous = {"a": 1, "b": 1}

        assert attribute(previous, {"a": 2, "b": 2}) == "b"
        assert attribute(previous, {"b": 2, "a": 2}) == "a"

    def test_find_candidates_lists_all_grown_codes(self):
        """Every grown invite is reported as a candidate in order."""
        assert find_candidates({"a": 1}, {"a": 2, "b": 0, "c": 3}) == ("a", "c")

    def test_tracked_invite_wins_over_unseen_one(self):
        """An invite seen before the pass beats one that appeared during it."""
        previous = {"abc123": 4}
        current = {"abc123": 5, "xyz999": 2}

        assert find_candidates(previous, current) == ("abc123", "xyz999")
        assert attribute(previous, current) == "abc123"

    def test_end_to_end_scenario(self, registry):
        """abc123 grew from 4 to 5, so Jordan is the resolved name."""
        registry.register("abc123", "Jordan")

        code = attribute({"abc123": 4}, {"abc123": 5, "xyz999": 2})

        assert code == "abc123"
        assert resolve_name(registry, code, "jordan_b") == "Jordan"


class TestResolveName:
    """Tests for the name resolution policy."""

    def test_mapped_code_resolves_to_registered_name(self, registry):
        registry.register("abc123", "Jordan")

        assert resolve_name(registry, "abc123", "jordan_b") == "Jordan"

    def test_unmapped_code_uses_fallback(self, registry):
        registry.update_usage("abc123", 1)

        assert resolve_name(registry, "abc123", "Taylor") == "Taylor"

    def test_no_code_uses_fallback(self, registry):
        assert resolve_name(registry, None, "Taylor") == "Taylor"

    @pytest.mark.parametrize("fallback", [None, "", "   "])
    def test_empty_fallback_becomes_placeholder(self, registry, fallback):
        assert resolve_name(registry, None, fallback) == DEFAULT_CLIENT_NAME


class TestInviteAttributor:
    """Tests for a reconciliation pass against the registry."""

    @pytest.mark.asyncio
    async def test_reconcile_writes_back_every_observed_count(self, registry):
        """All fetched counts are stored, not just the attributed one."""
        registry.register("abc123", "Jordan")
        registry.update_usage("abc123", 4)
        registry.update_usage("xyz999", 2)
        attributor = InviteAttributor(registry)

        async def fetch():
            return {"abc123": 5, "xyz999": 2, "new1": 0}

        result = await attributor.reconcile(fetch)

        assert result.code == "abc123"
        assert not result.ambiguous
        assert registry.snapshot_usage() == {"abc123": 5, "xyz999": 2, "new1": 0}

    @pytest.mark.asyncio
    async def test_reconcile_flags_ambiguous_passes(self, registry):
        """Two grown invites are reported as ambiguous."""
        registry.warm({"a": 1, "b": 1})
        attributor = InviteAttributor(registry)

        async def fetch():
            return {"a": 2, "b": 2}

        result = await attributor.reconcile(fetch)

        assert result.ambiguous
        assert result.code == "b"
        assert result.candidates == ("a", "b")

    @pytest.mark.asyncio
    async def test_reconcile_fetch_failure_attributes_nothing(self, registry):
        """A failed fetch leaves the registry untouched."""
        registry.warm({"a": 1})
        attributor = InviteAttributor(registry)

        async def fetch():
            raise DiscordOperationError("boom")

        result = await attributor.reconcile(fetch)

        assert result.code is None
        assert registry.snapshot_usage() == {"a": 1}

    @pytest.mark.asyncio
    async def test_concurrent_reconciliations_do_not_lose_updates(self, registry):
        """The second pass should diff against the first pass's write-back."""
        registry.warm({"a": 0})
        attributor = InviteAttributor(registry)
        responses = iter([{"a": 1}, {"a": 2}])

        async def fetch():
            snapshot = next(responses)
            await asyncio.sleep(0.01)
            return snapshot

        first, second = await asyncio.gather(
            attributor.reconcile(fetch), attributor.reconcile(fetch)
        )

        assert first.candidates == ("a",)
        assert second.candidates == ("a",)
        assert registry.snapshot_usage() == {"a": 2}
