"""
Exception hierarchy for the call relay.

Parse errors are recovered per frame; setup and transport errors end the
session.
"""


class RelayError(Exception):
    """Base class for all call relay errors."""


class ProtocolParseError(RelayError):
    """A frame on either leg could not be parsed or validated."""

    def __init__(self, leg: str, message: str):
        self.leg = leg
        super().__init__(f"{leg} frame rejected: {message}")


class SignedUrlError(RelayError):
    """The signed URL for the AI leg could not be obtained."""


class UpstreamUnavailable(SignedUrlError):
    """Network failure or non-2xx status from the control API."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class MalformedResponse(SignedUrlError):
    """The control API answered without a usable ``signed_url``."""


class SetupFailure(RelayError):
    """The AI leg could not be established for this call."""


class TransportError(RelayError):
    """A leg's socket errored or was reset mid-call."""

    def __init__(self, leg: str, message: str):
        self.leg = leg
        super().__init__(f"{leg} leg transport error: {message}")
