class VerificationError(AssertionError):
    """
    Raised when a captured message does not match what was sent.

    Subclasses AssertionError so test runners report it as a failed check
    rather than a client error.
    """
    pass
