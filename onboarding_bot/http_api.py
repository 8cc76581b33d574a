from __future__ import annotations

import hmac
from typing import Optional, Protocol

from aiohttp import web

from .errors import BotNotReady, DiscordOperationError, InvalidInput, PermissionDenied
from .progress import ProgressLogger
from .registry import InviteRegistry

SECRET_HEADER = "x-zapier-secret"


class InvitePromptPoster(Protocol):
    def is_ready(self) -> bool: ...

    async def post_invite_prompt(self) -> None: ...


class OnboardingApi:
    """HTTP endpoints used by the automation tooling."""

    def __init__(
        self,
        registry: InviteRegistry,
        poster: InvitePromptPoster,
        *,
        business_name: str,
        shared_secret: Optional[str] = None,
        progress: Optional[ProgressLogger] = None,
    ) -> None:
        self._registry = registry
        self._poster = poster
        self._business_name = business_name
        self._shared_secret = shared_secret
        self._progress = progress or ProgressLogger()

    def _authorized(self, request: web.Request) -> bool:
        if not self._shared_secret:
            return False
        provided = request.headers.get(SECRET_HEADER)
        if provided is None:
            return False
        return hmac.compare_digest(provided.encode(), self._shared_secret.encode())

    async def health(self, request: web.Request) -> web.Response:
        return web.Response(text=f"{self._business_name} Discord Bot is running.")

    async def invite_map(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return web.Response(status=400, text="inviteCode and firstname required")

        code = body.get("inviteCode")
        firstname = body.get("firstname")
        if not isinstance(code, str) or not isinstance(firstname, str):
            return web.Response(status=400, text="inviteCode and firstname required")
        try:
            record = self._registry.register(code, firstname)
        except InvalidInput:
            return web.Response(status=400, text="inviteCode and firstname required")

        self._progress.info(f"Mapped {record.code} → {record.assigned_name}")
        return web.Response(text="ok")

    async def post_invite_button(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            self._progress.warning("Rejected invite button request with a missing or wrong secret.")
            return web.Response(status=401, text="unauthorized")
        if not self._poster.is_ready():
            return web.Response(status=503, text="bot not ready")

        try:
            await self._poster.post_invite_prompt()
        except BotNotReady:
            return web.Response(status=503, text="bot not ready")
        except PermissionDenied as exc:
            self._progress.error(f"Cannot post the invite button: {exc}")
            return web.Response(status=403, text="bot lacks permission for the invite channel")
        except DiscordOperationError as exc:
            self._progress.error(f"Posting the invite button failed: {exc}")
            return web.Response(status=502, text="discord request failed")

        return web.Response(text="ok")


def create_app(api: OnboardingApi) -> web.Application:
    app = web.Application()
    app.router.add_get("/", api.health)
    app.router.add_post("/invite-map", api.invite_map)
    app.router.add_post("/post-invite-button", api.post_invite_button)
    return app


async def start_http_server(
    app: web.Application, port: int, progress: Optional[ProgressLogger] = None
) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    (progress or ProgressLogger()).success(f"HTTP server listening on port {port}")
    return runner
