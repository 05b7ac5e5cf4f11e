"""Error taxonomy for a probe run."""


class PingCheckError(Exception):
    """Base class for pingcheck errors."""


class ResolutionError(PingCheckError):
    """Target is neither a literal IPv4 address nor resolvable. Ends the run."""


class EchoTransportError(PingCheckError):
    """One echo exchange failed. Recorded as a lost packet; the run continues."""


class EchoTimeout(EchoTransportError):
    """No reply arrived before the per-packet deadline."""


class RawSocketPermissionError(EchoTransportError, PermissionError):
    """Raised when an ICMP socket cannot be opened for lack of privileges."""
