"""Exceptions raised by the ranking core."""


class SearchError(Exception):
    """Base class for ranking core errors."""


class IndexBuildError(SearchError):
    """Corpus is empty or malformed. Fatal at startup."""


class ProviderError(SearchError):
    """An embedding or cross-encoder call failed or ran past its deadline."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class EngineTimeout(SearchError):
    """The primary engine did not answer before its deadline."""

    def __init__(self, timeout_ms: float):
        super().__init__(f"Engine timed out after {timeout_ms:.0f}ms")
        self.timeout_ms = timeout_ms


class EngineFailure(SearchError):
    """The primary engine raised. The original exception is the __cause__."""


class ComparisonError(SearchError):
    """A shadow comparison could not be completed. Logged, never raised to callers."""
