"""
Error taxonomy for newsfab.

Only ConfigError and TemplateError are fatal, and only at startup.
Everything raised while a cycle runs is recovered at the cycle boundary.
"""


class NewsfabError(Exception):
    """Base exception for all newsfab errors."""


class ConfigError(NewsfabError):
    """The source list could not be loaded."""


class TemplateError(NewsfabError):
    """The render template is missing or does not compile."""


class FetchError(NewsfabError):
    """Base exception for a single source that could not be fetched."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class FetchNetworkError(FetchError):
    """Connection or transport failure, including non-success HTTP status."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, source=source)
        self.status_code = status_code


class FetchTimeoutError(FetchError):
    """The request was still outstanding when the deadline expired."""


class MalformedFeedError(FetchError):
    """The response body parsed to no usable feed structure."""


class RenderError(NewsfabError):
    """The template failed while rendering a snapshot."""


class PublishError(NewsfabError):
    """Rendered output could not be published. The destination is untouched."""


class CycleError(NewsfabError):
    """A cycle failed during render or publish."""
