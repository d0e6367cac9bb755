"""Exception hierarchy shared by every pipeline stage."""


class NewsDigestError(Exception):
    """Base class for all pipeline errors."""


class SourceUnavailable(NewsDigestError):
    """A feed, API or page could not be fetched (timeout, non-2xx, bad payload)."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class OracleError(NewsDigestError):
    """The generative text service failed to answer."""


class OracleUnparsable(OracleError):
    """The oracle answered but the structured output was missing or malformed."""


class StoreUnavailable(NewsDigestError):
    """The backing key-value store could not be reached."""


class ConfigurationMissing(NewsDigestError):
    """A required setting (credential, token) is not configured."""


class RewriteRejected(NewsDigestError):
    """An item was rejected during rewriting and must be skipped."""
