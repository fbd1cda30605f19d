"""
Ephemeral MailHog environments for end-to-end scenarios.

Each call to `provision_test_env` starts its own MailHog container on
dynamically mapped host ports, so scenarios can run in parallel and never
see each other's messages.
"""
import asyncio
import logging
import smtplib
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from mailhog.client import MailHogClient
from mailhog.exceptions import HttpStatusError, TransportError
from shared.config import Settings, settings as default_settings
from .exceptions import EnvironmentStartupError
from .internals.container import (
    build_container,
    docker_available,
    start_container,
    stop_container,
)
from .internals.smtp_sender import SmtpSender

logger = logging.getLogger(__name__)

__all__ = ["TestEnv", "provision_test_env", "docker_available"]


@dataclass(frozen=True)
class TestEnv:
    # Not a test class; keeps pytest from trying to collect it.
    __test__ = False

    mailhog: MailHogClient
    sender: SmtpSender
    http_base_url: str
    smtp_host: str
    smtp_port: int


@asynccontextmanager
async def provision_test_env(settings: Optional[Settings] = None) -> AsyncGenerator[TestEnv, None]:
    """
    Starts a fresh MailHog container and yields a TestEnv bound to it.

    The HTTP client is closed and the container stopped on every exit path,
    including assertion failures inside the `async with` body.

    Example:
        async with provision_test_env() as env:
            env.sender.send(make_rand_message())
            page = await env.mailhog.list_messages()
    """
    settings = settings or default_settings
    container = build_container(settings)
    mailhog: Optional[MailHogClient] = None
    try:
        endpoints = await asyncio.to_thread(start_container, container, settings)
        mailhog = MailHogClient(endpoints.http_base_url)
        sender = SmtpSender(endpoints.host, endpoints.smtp_port)

        await _wait_until_ready(mailhog, sender, settings)

        yield TestEnv(
            mailhog=mailhog,
            sender=sender,
            http_base_url=endpoints.http_base_url,
            smtp_host=endpoints.host,
            smtp_port=endpoints.smtp_port,
        )
    finally:
        if mailhog is not None:
            await mailhog.aclose()
        await asyncio.to_thread(stop_container, container)


async def _wait_until_ready(mailhog: MailHogClient, sender: SmtpSender, settings: Settings) -> None:
    """Polls the HTTP API and the SMTP relay until both answer."""
    max_retries = settings.MAILHOG_STARTUP_MAX_RETRIES
    retry_interval = settings.MAILHOG_STARTUP_RETRY_INTERVAL_SECONDS
    logger.info(f"Waiting for MailHog at {mailhog.base_url} to become available...")

    last_error: Optional[Exception] = None
    for i in range(max_retries):
        try:
            await mailhog.list_messages()
            if await asyncio.to_thread(sender.check):
                logger.info("MailHog is available.")
                return
        except (TransportError, HttpStatusError, smtplib.SMTPException, OSError) as e:
            last_error = e
            logger.debug(f"MailHog not ready yet ({i + 1}/{max_retries}): {e}")
        await asyncio.sleep(retry_interval)

    logger.error(f"MailHog did not become available after {max_retries} retries.")
    raise EnvironmentStartupError(
        f"MailHog at {mailhog.base_url} not ready after {max_retries} attempts: {last_error}"
    )
