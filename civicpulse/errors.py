"""
Error kinds shared by gateways, services and the HTTP layer
"""

from typing import Optional


class CivicPulseError(Exception):
    """Base class for all CivicPulse errors"""


class InvalidInput(CivicPulseError):
    """Missing or malformed request input, raised before any upstream call"""


class UpstreamError(CivicPulseError):
    """Failure talking to an external provider"""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.status_code = status_code


class UpstreamUnavailable(UpstreamError):
    """Network failure or 5xx response"""


class UpstreamTimeout(UpstreamUnavailable):
    """Provider did not answer within the configured timeout"""


class UpstreamRateLimited(UpstreamUnavailable):
    """HTTP 429 from a provider; transient"""


class UpstreamAuthFailure(UpstreamError):
    """Missing, placeholder or rejected API key, or an exhausted quota"""


class MalformedResponse(UpstreamError):
    """Response body could not be decoded into the expected shape"""
