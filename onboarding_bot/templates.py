"""Channel layout and message texts for a client workspace."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .config import TeamConfig


@dataclass(frozen=True, slots=True)
class ChannelSpec:
    name: str
    primary: bool = False


DEFAULT_CHANNELS: Tuple[ChannelSpec, ...] = (
    ChannelSpec("🤝│team-chat", primary=True),
    ChannelSpec("🚀│launch-tracking"),
    ChannelSpec("🎯│campaigns"),
    ChannelSpec("📞│appointments"),
    ChannelSpec("🛠│systems"),
    ChannelSpec("📚│resources"),
)


WELCOME_TEMPLATE = """\
✨ **Welcome to {business}!**

Hey {member}, welcome aboard.
You've just plugged into a team that lives and breathes performance, systems, and predictable growth.

From here, we'll work with you to optimise your offer, build and refine your funnel, launch winning campaigns, and put the right automation in place so growth becomes repeatable, not random. You're not just "working with an agency": you've got an optimisation partner.

⸻

👥 **Your {business} Team**

{founders} – **Co-Founders / Growth Strategy**
Set the strategic direction, positioning, and high-level growth plan for your account.

{csms} – **Client Success Team**
Your day-to-day partners. If you need clarity, priorities, or help unblocking something fast, they're your first ping.

{fulfilment} – **Fulfilment Lead**
Oversees creatives, funnels, tracking, and ad implementation to make sure what we launch is sharp and aligned with your goals.

{operations} – **Operations & Systems**
Keeps your onboarding, assets, and workflows organised so everything feels clean and under control behind the scenes.

**Creative & Tech Support**
Handles builds, edits, integrations, tracking, and ongoing optimisations.

⸻

📌 **How to use this space, {name}**

{channel_guide}

⸻

**Next step:** Head over to {start_here} and complete your intake form.
That gives us the data we need to prioritise your setup and start optimising quickly.

We're pumped to build something scalable with you. 🚀"""


INVITE_PROMPT_TEMPLATE = """\
🔗 **{business} client invites**

Press the button below to generate a single-use invite for a new client.
You'll be asked for the client's first name so their private workspace is named correctly."""


_CHANNEL_HINTS: Mapping[str, str] = {
    "team-chat": "for updates, questions, and async check-ins",
    "launch-tracking": "to track launches",
    "campaigns": "to review and discuss campaigns and performance",
    "appointments": "to coordinate calls and bookings",
    "systems": "for tech, automations, and integrations",
    "resources": "for important docs, links, and assets",
}


def mention_user(user_id: int) -> str:
    return f"<@{user_id}>"


def mention_channel(channel_id: int) -> str:
    return f"<#{channel_id}>"


def mention_list(user_ids: Sequence[int], fallback: str) -> str:
    """Join user mentions as ``a``, ``a & b`` or ``a, b & c``."""
    mentions = [mention_user(user_id) for user_id in user_ids]
    if not mentions:
        return fallback
    if len(mentions) == 1:
        return mentions[0]
    return f"{', '.join(mentions[:-1])} & {mentions[-1]}"


def channel_guide(channels: Iterable[ChannelSpec]) -> str:
    lines = []
    for spec in channels:
        slug = spec.name.split("│")[-1]
        hint = _CHANNEL_HINTS.get(slug, "")
        lines.append(f"- Use **{spec.name}** {hint}".rstrip())
    return "\n".join(lines)


def build_substitutions(
    *,
    name: str,
    member_id: int,
    business: str,
    team: TeamConfig,
    start_here_channel_id: Optional[int] = None,
    channels: Iterable[ChannelSpec] = DEFAULT_CHANNELS,
) -> Dict[str, str]:
    return {
        "name": name,
        "member": mention_user(member_id),
        "business": business,
        "founders": mention_list(team.founder_ids, "Our co-founders"),
        "csms": mention_list(team.csm_ids, "Our Client Success Team"),
        "fulfilment": mention_list(team.fulfilment_ids, "Our fulfilment lead"),
        "operations": mention_list(team.operations_ids, "Our operations team"),
        "start_here": (
            mention_channel(start_here_channel_id)
            if start_here_channel_id
            else "the start-here channel"
        ),
        "channel_guide": channel_guide(channels),
    }


def render_welcome_message(substitutions: Mapping[str, str]) -> str:
    return WELCOME_TEMPLATE.format_map(substitutions)


def render_invite_prompt(business: str) -> str:
    return INVITE_PROMPT_TEMPLATE.format(business=business)
