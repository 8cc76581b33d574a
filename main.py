from __future__ import annotations

import asyncio
import logging

import discord
from dotenv import load_dotenv

from onboarding_bot import (
    InviteRegistry,
    NotificationDispatcher,
    OnboardingApi,
    OnboardingClient,
    create_app,
    load_config,
    start_http_server,
)
from onboarding_bot.errors import ConfigurationError
from onboarding_bot.progress import ProgressLogger


async def _async_main() -> int:
    load_dotenv()
    discord.utils.setup_logging(level=logging.INFO)
    progress = ProgressLogger()

    try:
        config = load_config()
    except ConfigurationError as exc:
        progress.error(str(exc))
        return 1

    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    if not config.shared_secret:
        progress.warning("ZAPIER_SECRET not set, /post-invite-button will reject every request.")
    if not config.webhook.enabled:
        progress.warning("ZAPIER_WEBHOOK_URL not set, join webhooks are disabled.")

    registry = InviteRegistry()
    dispatcher = NotificationDispatcher(config.webhook, progress)
    client = OnboardingClient(config, registry=registry, dispatcher=dispatcher, progress=progress)
    api = OnboardingApi(
        registry,
        client,
        business_name=config.business_name,
        shared_secret=config.shared_secret,
        progress=progress,
    )

    runner = await start_http_server(create_app(api), config.port, progress)
    try:
        async with client:
            await client.start(config.token)
    except discord.LoginFailure:
        progress.error("Failed to authenticate with Discord. Please verify DISCORD_TOKEN.")
        return 1
    finally:
        await runner.cleanup()
        await dispatcher.close()
    return 0


def main() -> None:
    try:
        exit_code = asyncio.run(_async_main())
    except KeyboardInterrupt:
        print("\nShutting down.")
        return
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
