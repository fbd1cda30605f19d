class MailHogError(Exception):
    """Base class for errors raised by the MailHog retrieval client."""
    pass

class TransportError(MailHogError):
    """Raised when no response was obtained (connection refused, DNS, timeout, I/O)."""
    pass

class HttpStatusError(MailHogError):
    """Raised when the capture service answers with a non-success status."""
    def __init__(self, status_code: int, url: str, message: str = ""):
        self.status_code = status_code
        self.url = url
        self.message = message or f"MailHog returned HTTP {status_code} for {url}"
        super().__init__(self.message)

class MalformedResponse(MailHogError):
    """Raised when a response body cannot be decoded into the expected shape."""
    pass
