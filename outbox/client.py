import random
import string
from typing import List, Optional

from shared.config import settings
from .models import FixtureMessage, MakeMessagesParams

ALPHANUMERIC = string.ascii_letters + string.digits

# Module-level source used when callers don't inject their own.
_default_rng = random.Random()


def make_rand_str(n: int, rng: Optional[random.Random] = None) -> str:
    """Returns a random alphanumeric string of length `n`."""
    rng = rng or _default_rng
    return "".join(rng.choice(ALPHANUMERIC) for _ in range(n))


def make_rand_email_addr(domain: Optional[str] = None, rng: Optional[random.Random] = None) -> str:
    rng = rng or _default_rng
    mailbox = make_rand_str(settings.OUTBOX_MAILBOX_LENGTH, rng)
    if domain is None:
        domain = f"{make_rand_str(settings.OUTBOX_MAILBOX_LENGTH, rng)}.com"
    return f"{mailbox}@{domain}"


def make_rand_messages(
    n: int,
    params: Optional[MakeMessagesParams] = None,
    rng: Optional[random.Random] = None,
) -> List[FixtureMessage]:
    """
    Generates `n` fixture messages.

    Pinned fields in `params` are shared by every message; each unpinned field
    is drawn independently for each message. Pass a seeded `random.Random`
    to get the same batch on every run.
    """
    if n < 0:
        raise ValueError(f"Cannot generate a negative number of messages: {n}")
    params = params or MakeMessagesParams()
    rng = rng or _default_rng
    return [_make_one(params, rng) for _ in range(n)]


def make_rand_message(
    params: Optional[MakeMessagesParams] = None,
    rng: Optional[random.Random] = None,
) -> FixtureMessage:
    return make_rand_messages(1, params, rng)[0]


def _make_one(params: MakeMessagesParams, rng: random.Random) -> FixtureMessage:
    # Draw order is fixed so seeded runs are repeatable.
    from_addr = params.from_addr if params.from_addr is not None else make_rand_email_addr(params.domain, rng)
    to_addr = params.to_addr if params.to_addr is not None else make_rand_email_addr(params.domain, rng)
    subject = params.subject if params.subject is not None else make_rand_str(settings.OUTBOX_SUBJECT_LENGTH, rng)
    body = params.body if params.body is not None else make_rand_str(settings.OUTBOX_BODY_LENGTH, rng)
    return FixtureMessage(from_addr=from_addr, to_addr=to_addr, subject=subject, body=body)
