# /llmrouter/services/llm/errors.py

from typing import Optional

from llmrouter.models.llm import LLMProvider

# Every failure raised by a provider client is a ProviderError. The subclasses
# let callers tell configuration problems apart from upstream or network ones;
# all of them carry a message that can be shown to a user as-is.


class ProviderError(Exception):
    def __init__(self, message: str, provider: LLMProvider, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"provider={self.provider.value!r}, status_code={self.status_code!r})"
        )


class CredentialMissingError(ProviderError):
    """No API key configured. Raised before any network call is made."""


class UpstreamRequestError(ProviderError):
    """The provider answered with a non-2xx status."""


class StreamUnreadableError(ProviderError):
    """Streaming was requested but the body could not be read or decoded."""


class TransportError(ProviderError):
    """Network failure: no HTTP response at all, or the connection dropped mid-stream."""
