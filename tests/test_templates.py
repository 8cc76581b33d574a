"""Tests for the welcome message rendering."""

import pytest

from onboarding_bot.config import TeamConfig
from onboarding_bot.templates import (
    DEFAULT_CHANNELS,
    build_substitutions,
    mention_list,
    render_invite_prompt,
    render_welcome_message,
)


class TestMentions:
    @pytest.mark.parametrize(
        "ids,expected",
        [
            ([], "fallback"),
            ([1], "<@1>"),
            ([1, 2], "<@1> & <@2>"),
            ([1, 2, 3], "<@1>, <@2> & <@3>"),
        ],
    )
    def test_mention_list(self, ids, expected):
        assert mention_list(ids, "fallback") == expected


class TestRenderWelcomeMessage:
    def test_renders_team_and_channels(self, team):
        subs = build_substitutions(
            name="Jordan",
            member_id=424242,
            business="Acme",
            team=team,
            start_here_channel_id=800001,
        )

        message = render_welcome_message(subs)

        assert "**Welcome to Acme!**" in message
        assert "<@424242>" in message
        assert "<@11111> & <@22222>" in message
        assert "<#800001>" in message
        assert "**Creative & Tech Support**" in message
        for spec in DEFAULT_CHANNELS:
            assert spec.name in message

    def test_missing_team_members_fall_back_to_text(self):
        subs = build_substitutions(name="Jordan", member_id=1, business="Acme", team=TeamConfig())

        message = render_welcome_message(subs)

        assert "Our co-founders" in message
        assert "Our operations team" in message
        assert "the start-here channel" in message
        assert "<@" in message  # the member mention is always present

    def test_missing_substitution_raises(self):
        with pytest.raises(KeyError):
            render_welcome_message({"business": "Acme"})


def test_invite_prompt_names_the_business():
    assert "Acme" in render_invite_prompt("Acme")
