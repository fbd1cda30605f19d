import os
import sys
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx
from httpx import Response

# Add project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

from mailhog.client import MESSAGES_PATH, MailHogClient
from outbox.models import FixtureMessage
from shared.config import Settings
from testenv.client import TestEnv, provision_test_env
from testenv.exceptions import EnvironmentStartupError
from testenv.internals.container import MailHogEndpoints
from testenv.internals.smtp_sender import SmtpSender, build_email

# --- Test Setup ---

ENDPOINTS = MailHogEndpoints(host="127.0.0.1", smtp_port=49153, http_port=49154)
EMPTY_PAGE = {"total": 0, "start": 0, "count": 0, "items": []}
FAST_SETTINGS = Settings(MAILHOG_STARTUP_MAX_RETRIES=3, MAILHOG_STARTUP_RETRY_INTERVAL_SECONDS=0.01)


@pytest.fixture
def container_mocks():
    """Replaces Docker with mocks so provisioning can be exercised without a daemon."""
    container = MagicMock(name="DockerContainer")
    with patch("testenv.client.build_container", return_value=container) as mock_build, \
         patch("testenv.client.start_container", return_value=ENDPOINTS) as mock_start, \
         patch("testenv.client.stop_container") as mock_stop, \
         patch.object(SmtpSender, "check", return_value=True):
        yield {"container": container, "build": mock_build, "start": mock_start, "stop": mock_stop}


# --- provision_test_env ---

@pytest.mark.asyncio
@respx.mock
async def test_env_is_bound_to_resolved_ports(container_mocks):
    respx.get(host=ENDPOINTS.host, path=MESSAGES_PATH).mock(return_value=Response(200, json=EMPTY_PAGE))

    async with provision_test_env(FAST_SETTINGS) as env:
        assert isinstance(env, TestEnv)
        assert isinstance(env.mailhog, MailHogClient)
        assert env.http_base_url == "http://127.0.0.1:49154"
        assert env.mailhog.base_url == "http://127.0.0.1:49154"
        assert (env.sender.host, env.sender.port) == ("127.0.0.1", 49153)
        assert (env.smtp_host, env.smtp_port) == ("127.0.0.1", 49153)
        container_mocks["stop"].assert_not_called()

    container_mocks["build"].assert_called_once_with(FAST_SETTINGS)
    container_mocks["stop"].assert_called_once_with(container_mocks["container"])


@pytest.mark.asyncio
@respx.mock
async def test_container_is_stopped_when_scenario_fails(container_mocks):
    respx.get(host=ENDPOINTS.host, path=MESSAGES_PATH).mock(return_value=Response(200, json=EMPTY_PAGE))

    with pytest.raises(AssertionError):
        async with provision_test_env(FAST_SETTINGS):
            assert False, "scenario failed"

    container_mocks["stop"].assert_called_once_with(container_mocks["container"])


@pytest.mark.asyncio
@respx.mock
async def test_readiness_retries_until_http_answers(container_mocks):
    route = respx.get(host=ENDPOINTS.host, path=MESSAGES_PATH).mock(
        side_effect=[
            httpx.ConnectError("connection reset"),
            Response(200, json=EMPTY_PAGE),
        ]
    )

    async with provision_test_env(FAST_SETTINGS):
        pass

    assert route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_readiness_gives_up_and_still_tears_down(container_mocks):
    respx.get(host=ENDPOINTS.host, path=MESSAGES_PATH).mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(EnvironmentStartupError):
        async with provision_test_env(FAST_SETTINGS):
            pytest.fail("body must not run when MailHog never becomes ready")

    container_mocks["stop"].assert_called_once_with(container_mocks["container"])


@pytest.mark.asyncio
async def test_container_is_stopped_when_start_fails(container_mocks):
    container_mocks["start"].side_effect = RuntimeError("image pull failed")

    with pytest.raises(RuntimeError):
        async with provision_test_env(FAST_SETTINGS):
            pass

    container_mocks["stop"].assert_called_once_with(container_mocks["container"])


# --- SmtpSender ---

FIXTURE = FixtureMessage(from_addr="alice@y.com", to_addr="bob@x.com", subject="hi", body="hello world")


def test_build_email_sets_envelope_headers():
    msg = build_email(FIXTURE)
    assert msg["From"] == "alice@y.com"
    assert msg["To"] == "bob@x.com"
    assert msg["Subject"] == "hi"
    assert msg.get_content().rstrip("\n") == "hello world"


def test_long_body_is_sent_quoted_printable():
    """
    A 200 character line exceeds the SMTP line limit, so it goes out as
    quoted-printable with soft line breaks that MailHog stores verbatim.
    """
    msg = build_email(FIXTURE.model_copy(update={"body": "a" * 200}))
    assert msg["Content-Transfer-Encoding"] == "quoted-printable"
    assert "=\n" in msg.get_payload()


def test_short_body_is_sent_7bit():
    assert build_email(FIXTURE)["Content-Transfer-Encoding"] == "7bit"


@patch("testenv.internals.smtp_sender.smtplib.SMTP")
def test_send_all_submits_in_order_over_one_connection(mock_smtp_class):
    smtp = mock_smtp_class.return_value.__enter__.return_value
    fixtures = [FIXTURE.model_copy(update={"subject": f"s{i}"}) for i in range(3)]

    sent = SmtpSender("127.0.0.1", 49153).send_all(fixtures)

    assert sent == 3
    mock_smtp_class.assert_called_once_with("127.0.0.1", 49153, timeout=10.0)
    subjects = [c.args[0]["Subject"] for c in smtp.send_message.call_args_list]
    assert subjects == ["s0", "s1", "s2"]
    smtp.starttls.assert_not_called()
    smtp.login.assert_not_called()


@patch("testenv.internals.smtp_sender.smtplib.SMTP")
def test_check_reports_relay_status(mock_smtp_class):
    smtp = mock_smtp_class.return_value.__enter__.return_value
    smtp.noop.return_value = (250, b"2.0.0 Ok")
    assert SmtpSender("127.0.0.1", 49153).check() is True

    smtp.noop.return_value = (421, b"Service not available")
    assert SmtpSender("127.0.0.1", 49153).check() is False
