"""
DoH pipeline errors.

Each error carries the HTTP status and plain-text body the web layer
returns for it. These are the only failures the pipeline surfaces; an
empty answer set is a successful response, not an error.
"""


class DoHError(Exception):
    """Base class for failures that end a DoH request without a wire answer."""

    status = 500
    body = "Server Error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.body)


class InvalidQuery(DoHError):
    """Malformed inbound bytes, no question, or a question with zero labels."""

    status = 400
    body = "Invalid Query"


class NameNotResolvable(DoHError):
    """Bare-TLD query under a managed TLD (no domain label)."""

    status = 404
    body = "NXDOMAIN"


class ServerError(DoHError):
    """Any unexpected fault while resolving, including a missed deadline."""

    status = 500
    body = "Server Error"
