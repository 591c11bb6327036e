"""ADPILOT — Domain Error Taxonomy.

Every failure the sync pipeline and the AI layer can produce. Each class
documents where it is recovered; routes translate the ones that escape into
HTTP errors.
"""

from typing import Optional


class AdPilotError(Exception):
    """Base class for all domain errors."""


# ── Ads platform ──


class AdsPlatformError(AdPilotError):
    """Raised when the ads platform API returns an error."""

    def __init__(self, message: str, status_code: int = 0, error_code: str = ""):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class AdsAuthError(AdsPlatformError):
    """Refresh-token exchange rejected. Never treated as a hierarchy error."""


class AccountHierarchyError(AdsPlatformError):
    """Listing child accounts failed. Recovered by the standalone fallback."""


# ── Sync isolation boundaries ──


class PerAccountFetchError(AdPilotError):
    """One account's campaign fetch failed inside an identity's pass."""

    def __init__(self, account_id: str, cause: Exception):
        self.account_id = account_id
        self.cause = cause
        super().__init__(f"Campaign fetch failed for account {account_id}: {cause}")


class PerIdentitySyncError(AdPilotError):
    """A whole identity failed before any account could be fetched."""

    def __init__(self, user_id: str, cause: Exception):
        self.user_id = user_id
        self.cause = cause
        super().__init__(f"Sync failed for identity {user_id}: {cause}")


class SchedulerAlreadyStartedError(AdPilotError):
    """start() called on a running scheduler."""


class SyncInProgressError(AdPilotError):
    """Another orchestration pass holds the sync lock."""


# ── AI providers ──


class TransientProviderError(AdPilotError):
    """One adapter was unreachable, rate-limited or timed out."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class InsufficientProvidersError(AdPilotError):
    """Fewer than two usable responses were available for consensus."""

    def __init__(self, usable: int, queried: int):
        self.usable = usable
        self.queried = queried
        super().__init__(
            f"Insufficient providers for consensus: {usable} usable of {queried} queried (need 2)"
        )


class UnknownProviderError(AdPilotError):
    """Provider name does not match any known provider."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown provider: {name}")


class ProviderUnavailableError(AdPilotError):
    """Provider is known but has no credentials configured."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} provider not configured")


# ── Records ──


class NotFoundError(AdPilotError):
    """Requested record does not exist for this owner."""


class RecommendationStateError(AdPilotError):
    """Apply/dismiss attempted on a recommendation that is no longer pending."""

    def __init__(self, recommendation_id: int, status: str, detail: Optional[str] = None):
        self.recommendation_id = recommendation_id
        self.status = status
        super().__init__(
            detail or f"Recommendation {recommendation_id} is already {status}"
        )
