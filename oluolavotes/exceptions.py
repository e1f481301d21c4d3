"""
oluolavotes Exceptions

Custom exception classes for the voting client.
"""


class OluolaVotesException(Exception):
    """Base exception for the voting client."""
    pass


class ClarityError(OluolaVotesException):
    """Clarity value could not be processed."""
    pass


class ClarityEncodeError(ClarityError):
    """Value cannot be represented as the requested Clarity type."""
    pass


class ClarityDecodeError(ClarityError):
    """Serialized Clarity bytes are malformed."""
    pass


class InvalidAddressError(OluolaVotesException):
    """Invalid Stacks address or principal."""
    pass


class ConfigError(OluolaVotesException):
    """Configuration is invalid."""
    pass


class NetworkError(OluolaVotesException):
    """Transport-level failure talking to the Stacks node."""
    pass


class QueryError(OluolaVotesException):
    """A read-only contract call did not produce a usable value."""

    def __init__(self, function_name: str, message: str):
        super().__init__(f"{function_name}: {message}")
        self.function_name = function_name


class ReadOnlyCallRejected(QueryError):
    """The node answered okay=false for a read-only call."""
    pass


class WalletError(OluolaVotesException):
    """The external wallet could not be reached or answered garbage."""
    pass
