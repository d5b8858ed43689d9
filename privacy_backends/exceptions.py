"""
Privacy Backend Exceptions

Validation problems and programmatic misuse raise these at the call site.
Expected transfer failures are returned as ``TransferResult(status=failed)``
instead of being raised.
"""


class PrivacyBackendError(Exception):
    """Base exception for the privacy backend layer."""
    pass


class ValidationError(PrivacyBackendError, ValueError):
    """Request parameters rejected by a backend or the engine."""
    pass


class InvalidAmountError(ValidationError):
    """Amount is not a positive integer in base units."""
    pass


class BelowMinimumAmountError(ValidationError):
    """Amount is below the backend's minimum denomination."""
    pass


class ComplianceError(ValidationError):
    """Compliant transfer cannot be honoured (missing viewing key or support)."""
    pass


class BackendNotRegisteredError(PrivacyBackendError, LookupError):
    """Backend name is not present in the registry."""
    pass


class NoBackendAvailableError(PrivacyBackendError):
    """No available backend satisfies the selection constraints."""
    pass


class BackendUnavailableError(PrivacyBackendError):
    """Backend cannot serve requests right now."""
    pass


class QuoteError(PrivacyBackendError):
    """Quote cannot be produced or used."""
    pass


class QuoteExpiredError(QuoteError):
    """Quote passed its expiry time before the transfer started."""
    pass


class QuoteMismatchError(QuoteError):
    """Quote was issued by another backend or marked invalid."""
    pass


class SimulatedFailureError(PrivacyBackendError):
    """Failure injected by the mock backend."""
    pass


class UnsupportedCapabilityError(PrivacyBackendError, NotImplementedError):
    """Optional capability is not supported by this backend."""
    pass


class EventSequenceError(PrivacyBackendError, RuntimeError):
    """Transfer events emitted out of protocol order."""
    pass
