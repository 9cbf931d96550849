"""Exception hierarchy shared by the relay packages."""


class RelayError(Exception):
    """Base class for relay errors."""


class SlotBusyError(RelayError):
    """Raised when a second ticket tries to occupy the dispatch slot."""


class LLMError(RelayError):
    """The LLM endpoint call did not produce a completion."""


class LLMUnavailableError(LLMError):
    """Endpoint unreachable, overloaded or timed out. Retryable."""


class LLMRejectedError(LLMError):
    """Endpoint refused the request or answered nonsense. Not retryable."""


class TransportError(RelayError):
    """Messaging platform API call failed."""
