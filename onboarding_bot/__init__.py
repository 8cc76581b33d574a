"""Discord client-onboarding bot package."""

from .attribution import Attribution, InviteAttributor, attribute, resolve_name
from .config import BotConfig, TeamConfig, WebhookConfig, load_config
from .discord_client import OnboardingClient
from .http_api import OnboardingApi, create_app, start_http_server
from .onboarding import OnboardingService
from .provisioner import MembershipEvent, ProvisionedWorkspace, WorkspaceProvisioner
from .registry import InviteRecord, InviteRegistry
from .webhook import JoinNotification, NotificationDispatcher

__all__ = [
    "Attribution",
    "InviteAttributor",
    "attribute",
    "resolve_name",
    "BotConfig",
    "TeamConfig",
    "WebhookConfig",
    "load_config",
    "OnboardingClient",
    "OnboardingApi",
    "create_app",
    "start_http_server",
    "OnboardingService",
    "MembershipEvent",
    "ProvisionedWorkspace",
    "WorkspaceProvisioner",
    "InviteRecord",
    "InviteRegistry",
    "JoinNotification",
    "NotificationDispatcher",
]
