class EnvironmentStartupError(Exception):
    """Raised when a provisioned MailHog instance never becomes ready."""
    pass
