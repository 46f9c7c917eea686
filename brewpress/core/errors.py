"""
Error types for brewpress.
"""


class BrewpressError(Exception):
    """Base class for all brewpress errors."""


class ConfigError(BrewpressError):
    """Required configuration (credentials, endpoints) is missing or invalid."""


class EnrichmentError(BrewpressError):
    """
    A failure confined to a single article.

    The orchestrator turns these into a failed outcome and the batch moves on.
    """
    kind = "EnrichmentError"


class AIError(EnrichmentError):
    """The AI capability failed with a non rate-limit error."""
    kind = "AIError"


class RateLimited(EnrichmentError):
    """The AI capability kept rate limiting after every retry."""
    kind = "RateLimited"


class ParseError(EnrichmentError):
    """AI output could not be decoded into the expected record."""
    kind = "ParseError"


class NetworkError(EnrichmentError):
    """Fetch, download or upload failed at the transport level."""
    kind = "NetworkError"


class WriteError(EnrichmentError):
    """The write-back response did not carry the expected identifier."""
    kind = "WriteError"
