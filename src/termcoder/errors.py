"""Error hierarchy shared by the orchestrator and its collaborators."""


class TermcoderError(Exception):
    """Base class for all termcoder errors."""


class ConfigurationError(TermcoderError):
    """Raised when a required setting (such as the API key) is missing."""


class ModelGatewayError(TermcoderError):
    """Raised when the chat-completion request fails in transport or at the API."""


class NoChoicesError(ModelGatewayError):
    """Raised when the API answers successfully but with an empty choice list."""


class ToolError(TermcoderError):
    """Raised by a tool when its invocation cannot be completed."""


class PersistenceError(TermcoderError):
    """Raised when the session store cannot record a change."""
