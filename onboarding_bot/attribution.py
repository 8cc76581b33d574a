"""Infer which invite a joining member used.

Discord does not say which invite a member joined through, so the bot keeps
the last known usage count per invite and diffs it against a fresh fetch.
When two members join through different invites between two fetches, both
invites grow in the same pass. Invites tracked before the pass win over
unseen ones, then the last one in the fetch order is picked.
That attribution is best effort and can be wrong for one of the two members.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Optional, Sequence, Tuple

from .errors import DiscordOperationError
from .progress import ProgressLogger
from .registry import InviteRegistry

DEFAULT_CLIENT_NAME = "Client"


@dataclass(frozen=True, slots=True)
class Attribution:
    code: Optional[str]
    candidates: Tuple[str, ...] = ()

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


def find_candidates(previous: Mapping[str, int], current: Mapping[str, int]) -> Tuple[str, ...]:
    return tuple(code for code, uses in current.items() if uses - previous.get(code, 0) > 0)


def pick_candidate(candidates: Sequence[str], previous: Mapping[str, int]) -> Optional[str]:
    """Prefer invites that were already tracked, then the last one enumerated."""
    if not candidates:
        return None
    tracked = [code for code in candidates if code in previous]
    return (tracked or list(candidates))[-1]


def attribute(previous: Mapping[str, int], current: Mapping[str, int]) -> Optional[str]:
    return pick_candidate(find_candidates(previous, current), previous)


def resolve_name(registry: InviteRegistry, code: Optional[str], fallback: Optional[str]) -> str:
    fallback_name = (fallback or "").strip() or DEFAULT_CLIENT_NAME
    if code is None:
        return fallback_name
    name = registry.lookup(code)
    return name.strip() if name and name.strip() else fallback_name


class InviteAttributor:
    """Runs one reconciliation pass against the registry."""

    def __init__(self, registry: InviteRegistry, progress: Optional[ProgressLogger] = None) -> None:
        self._registry = registry
        self._progress = progress or ProgressLogger()

    async def reconcile(
        self, fetch_usage: Callable[[], Awaitable[Mapping[str, int]]]
    ) -> Attribution:
        async with self._registry.reconciliation():
            previous = self._registry.snapshot_usage()
            try:
                current = await fetch_usage()
            except DiscordOperationError as exc:
                self._progress.warning(f"Could not fetch invites for attribution: {exc}")
                return Attribution(code=None)

            candidates = find_candidates(previous, current)
            code = pick_candidate(candidates, previous)
            for observed, uses in current.items():
                self._registry.update_usage(observed, uses)

        if len(candidates) > 1:
            self._progress.warning(
                f"Several invites were used since the last check ({', '.join(candidates)}); "
                f"attributing the join to {code}."
            )
        return Attribution(code=code, candidates=candidates)
