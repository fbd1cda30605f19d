from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from mailhog.models import Message, MessageList, SearchKind, SearchParams
from outbox.client import make_rand_email_addr, make_rand_str
from outbox.models import FixtureMessage, MakeMessagesParams
from testenv.client import TestEnv
from .exceptions import VerificationError

logger = logging.getLogger(__name__)

SUBJECT_HEADER = "Subject"
QP_SOFT_LINE_BREAK = "=\r\n"


def normalize_body(body: str) -> str:
    """Strips quoted-printable soft line breaks so bodies compare by content."""
    return body.replace(QP_SOFT_LINE_BREAK, "")


def _check(condition: bool, message: str) -> None:
    if not condition:
        logger.error(f"Verification failed: {message}")
        raise VerificationError(message)


def assert_empty_page(message_list: MessageList) -> None:
    _check(message_list.total == 0, f"expected total=0, got {message_list.total}")
    _check(message_list.count == 0, f"expected count=0, got {message_list.count}")
    _check(message_list.start == 0, f"expected start=0, got {message_list.start}")
    _check(not message_list.items, f"expected no items, got {len(message_list.items)}")


def assert_message_matches(
    message: Message,
    fixture: FixtureMessage,
    *,
    now: Optional[datetime] = None,
) -> None:
    """
    Checks one captured message against the fixture it was sent from.

    - sender and the single recipient match as `mailbox@domain`
    - body matches after removing soft line breaks
    - encoded size is larger than the raw body
    - creation time is real, i.e. strictly before `now`
    - the Subject header holds exactly the sent subject
    """
    now = now or datetime.now(timezone.utc)
    label = f"message {message.id}"

    _check(str(message.from_) == fixture.from_addr,
           f"{label}: sender {message.from_} != {fixture.from_addr}")
    _check(len(message.to) == 1, f"{label}: expected 1 recipient, got {len(message.to)}")
    _check(str(message.to[0]) == fixture.to_addr,
           f"{label}: recipient {message.to[0]} != {fixture.to_addr}")
    _check(normalize_body(message.content.body) == fixture.body,
           f"{label}: body {message.content.body!r} != {fixture.body!r}")
    _check(message.content.size > len(fixture.body),
           f"{label}: size {message.content.size} not greater than body length {len(fixture.body)}")
    _check(message.created < now, f"{label}: created {message.created.isoformat()} is not before {now.isoformat()}")
    _check(SUBJECT_HEADER in message.content.headers, f"{label}: no {SUBJECT_HEADER} header")
    _check(message.content.headers[SUBJECT_HEADER] == [fixture.subject],
           f"{label}: subject {message.content.headers[SUBJECT_HEADER]} != {[fixture.subject]}")


def assert_page_matches(
    message_list: MessageList,
    outbox: Sequence[FixtureMessage],
    *,
    sort_by_created: bool = True,
) -> None:
    """
    Checks that a page holds exactly `outbox`, pairing items with sends by position.

    Server page order is not guaranteed, so items are sorted by creation time
    first unless `sort_by_created` is False. Stops at the first mismatch.
    """
    expected = len(outbox)
    _check(message_list.total == expected, f"expected total={expected}, got {message_list.total}")
    _check(message_list.count == expected, f"expected count={expected}, got {message_list.count}")
    _check(message_list.start == 0, f"expected start=0, got {message_list.start}")
    _check(len(message_list.items) == message_list.count,
           f"page holds {len(message_list.items)} items but count={message_list.count}")

    page = message_list.in_creation_order() if sort_by_created else message_list
    now = datetime.now(timezone.utc)
    for message, fixture in zip(page.items, outbox):
        assert_message_matches(message, fixture, now=now)


def search_scenarios(rng: Optional[random.Random] = None) -> List[Tuple[MakeMessagesParams, SearchParams]]:
    """
    The four canonical search checks: exact sender, exact recipient, and a
    unique substring of the subject and of the body.
    """
    from_addr = make_rand_email_addr(rng=rng)
    to_addr = make_rand_email_addr(rng=rng)
    subject_part = make_rand_str(10, rng)
    subject = f"{subject_part} {make_rand_str(30, rng)}"
    body_part = make_rand_str(10, rng)
    body = f"{body_part} {make_rand_str(200, rng)}"

    return [
        (MakeMessagesParams(from_addr=from_addr), SearchParams(kind=SearchKind.SENDER, query=from_addr)),
        (MakeMessagesParams(to_addr=to_addr), SearchParams(kind=SearchKind.RECIPIENT, query=to_addr)),
        (MakeMessagesParams(subject=subject), SearchParams(kind=SearchKind.CONTAINING, query=subject_part)),
        (MakeMessagesParams(body=body), SearchParams(kind=SearchKind.CONTAINING, query=body_part)),
    ]


async def verify_list_round_trip(env: TestEnv, outbox: Sequence[FixtureMessage]) -> MessageList:
    """Sends `outbox` via SMTP, then checks the default listing holds exactly those messages."""
    await asyncio.to_thread(env.sender.send_all, outbox)
    message_list = await env.mailhog.list_messages()
    assert_page_matches(message_list, outbox)
    logger.info(f"Verified {len(outbox)} message(s) via listing")
    return message_list


async def verify_search_round_trip(
    env: TestEnv,
    outbox: Sequence[FixtureMessage],
    search_params: SearchParams,
) -> MessageList:
    """Sends `outbox` via SMTP, then checks `search_params` finds exactly those messages."""
    await asyncio.to_thread(env.sender.send_all, outbox)
    message_list = await env.mailhog.search(search_params)
    assert_page_matches(message_list, outbox)
    logger.info(f"Verified {len(outbox)} message(s) via search kind={search_params.kind.value}")
    return message_list
