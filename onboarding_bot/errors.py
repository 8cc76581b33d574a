from __future__ import annotations

from typing import Optional


class OnboardingError(Exception):
    """Base exception for the onboarding bot."""


class ConfigurationError(OnboardingError):
    """Raised when the provided configuration is invalid."""


class InvalidInput(OnboardingError):
    """Raised when an inbound payload or argument is malformed."""


class Unauthorized(OnboardingError):
    """Raised when a caller lacks the shared secret or a staff role."""


class BotNotReady(OnboardingError):
    """Raised when the Discord connection is not established yet."""


class DiscordOperationError(OnboardingError):
    """Raised when an operation against Discord's API fails."""


class PermissionDenied(DiscordOperationError):
    """Raised when Discord rejects an operation for missing permissions."""


class RateLimitError(OnboardingError):
    """Raised when rate limit handling exhausts all retries."""


class ExternalNotifyFailed(OnboardingError):
    """Raised when the automation webhook call fails."""


class ProvisioningError(OnboardingError):
    """Raised when a step of workspace provisioning fails."""

    step = "provision"

    def __init__(self, message: str, *, member_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.member_id = member_id


class ContainerCreationFailed(ProvisioningError):
    step = "create_category"


class PermissionSetupFailed(ProvisioningError):
    step = "set_visibility"


class ChannelCreationFailed(ProvisioningError):
    step = "create_channels"


class MessageDeliveryFailed(ProvisioningError):
    step = "send_welcome_message"
