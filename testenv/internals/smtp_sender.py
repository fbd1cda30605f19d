import logging
import smtplib
from email.message import EmailMessage
from typing import Iterable

from outbox.models import FixtureMessage

logger = logging.getLogger(__name__)


def build_email(fixture: FixtureMessage) -> EmailMessage:
    """Turns a fixture into a plain-text RFC 5322 message."""
    msg = EmailMessage()
    msg["From"] = fixture.from_addr
    msg["To"] = fixture.to_addr
    msg["Subject"] = fixture.subject
    msg.set_content(fixture.body)
    return msg


class SmtpSender:
    """
    Submits fixture messages to an SMTP relay.

    Plain SMTP only: no STARTTLS and no AUTH, which is what MailHog expects.
    A fresh connection is opened per call so a sender can outlive server restarts.
    """

    def __init__(self, host: str, port: int, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    def send(self, fixture: FixtureMessage) -> None:
        self.send_all([fixture])

    def send_all(self, fixtures: Iterable[FixtureMessage]) -> int:
        """Sends each fixture in order over one connection. Returns the number sent."""
        sent = 0
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            for fixture in fixtures:
                smtp.send_message(build_email(fixture))
                sent += 1
                logger.debug(f"Sent fixture from {fixture.from_addr} to {fixture.to_addr} via {self.host}:{self.port}")
        logger.info(f"Sent {sent} message(s) via SMTP {self.host}:{self.port}")
        return sent

    def check(self) -> bool:
        """Returns True if the relay answers NOOP with 250."""
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            code, _ = smtp.noop()
        return code == 250
