"""curlbridge errors - exception taxonomy for validation and transport failures."""


class CurlbridgeError(Exception):
    """Base exception for all curlbridge errors."""


class ValidationError(CurlbridgeError):
    """Raised when a request cannot be sent as-is (empty URL, unknown method)."""


class ConfigurationError(CurlbridgeError):
    """Raised when a config or request file is present but malformed."""


class TransportError(CurlbridgeError):
    """Raised by a transport when no usable response came back.

    kind is one of: connection_refused, host_not_found, timeout, network.
    A transport that did receive a server response may attach it as
    ``response`` so the dispatcher can still report the server's status.
    """

    def __init__(self, message: str, kind: str = "network", response=None):
        super().__init__(message)
        self.kind = kind
        self.response = response
