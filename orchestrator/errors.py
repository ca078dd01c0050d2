"""Exception hierarchy for configuration and programming errors.

Runtime provider failures are never raised; they travel as ``SearchError``
values on ``SearchResponse.errors``. These exceptions cover the cases where
the caller handed us something we cannot work with.
"""


class DispatchError(Exception):
    """Base class for errors raised by the dispatch engine."""


class ConfigurationError(DispatchError, ValueError):
    """A registry or config file is missing or malformed."""


class DistributionError(DispatchError):
    """A query batch could not be distributed."""


class UnknownWorkerClassError(DistributionError, ValueError):
    def __init__(self, worker_class: str, known: list[str] | tuple[str, ...]):
        self.worker_class = worker_class
        self.known = tuple(known)
        super().__init__(
            f"Unknown worker class '{worker_class}' (known: {', '.join(self.known)})"
        )
