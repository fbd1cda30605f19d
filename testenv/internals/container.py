import logging
from dataclasses import dataclass

import docker
from docker.errors import DockerException
from testcontainers.core.container import DockerContainer

from shared.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailHogEndpoints:
    host: str
    smtp_port: int
    http_port: int

    @property
    def http_base_url(self) -> str:
        return f"http://{self.host}:{self.http_port}"


def build_container(settings: Settings) -> DockerContainer:
    return DockerContainer(settings.MAILHOG_IMAGE).with_exposed_ports(
        settings.MAILHOG_SMTP_PORT, settings.MAILHOG_HTTP_PORT
    )


def start_container(container: DockerContainer, settings: Settings) -> MailHogEndpoints:
    """Starts the container and resolves the host-mapped SMTP and HTTP ports."""
    logger.info(f"Starting {settings.MAILHOG_IMAGE}")
    container.start()
    endpoints = MailHogEndpoints(
        host=container.get_container_host_ip(),
        smtp_port=int(container.get_exposed_port(settings.MAILHOG_SMTP_PORT)),
        http_port=int(container.get_exposed_port(settings.MAILHOG_HTTP_PORT)),
    )
    logger.info(
        f"MailHog up on {endpoints.host}: smtp port {endpoints.smtp_port}, http port {endpoints.http_port}"
    )
    return endpoints


def stop_container(container: DockerContainer) -> None:
    try:
        container.stop()
        logger.info("MailHog container stopped")
    except DockerException as e:
        logger.warning(f"Error stopping MailHog container (it may already be gone): {e}")


def docker_available() -> bool:
    """Returns True if a Docker daemon is reachable from this process."""
    try:
        client = docker.from_env()
        try:
            client.ping()
        finally:
            client.close()
        return True
    except (DockerException, OSError) as e:
        logger.info(f"Docker is not available: {e}")
        return False
