from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FixtureMessage(BaseModel):
    """A synthesized message to submit over SMTP and later find in MailHog."""

    from_addr: str
    to_addr: str
    subject: str
    body: str

    model_config = ConfigDict(frozen=True)


class MakeMessagesParams(BaseModel):
    """Fields to pin across a generated batch. Anything left as None is randomized per message."""

    from_addr: Optional[str] = None
    to_addr: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    domain: Optional[str] = Field(
        default=None, description="Domain for randomized addresses; a random `.com` domain when unset."
    )

    model_config = ConfigDict(frozen=True)
