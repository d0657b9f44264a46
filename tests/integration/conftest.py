import pytest
from typing import Callable, Generator
from unittest.mock import MagicMock
from testcontainers.core.container import DockerContainer
from testcontainers.mongodb import MongoDbContainer
from pymongo import MongoClient

from shared.persistance.mongo_db import ensure_indexes
from shared.services.email_service import EmailService


def _start_container(factory: Callable[[], DockerContainer]) -> DockerContainer:
    # building the container already talks to the Docker daemon
    try:
        container = factory()
        container.start()
    except Exception as e:
        pytest.skip(f"Docker is not available for MongoDB container: {e}")
    return container


@pytest.fixture(scope="session")
def container_starter() -> Callable[[Callable[[], DockerContainer]], DockerContainer]:
    return _start_container


@pytest.fixture(scope="session")
def mongodb_container(container_starter) -> Generator[MongoDbContainer, None, None]:
    container = container_starter(lambda: MongoDbContainer("mongo:7.0"))
    yield container
    container.stop()


@pytest.fixture(scope="session")
def mongodb_uri(mongodb_container: MongoDbContainer) -> str:
    return mongodb_container.get_connection_url()


@pytest.fixture(scope="session")
def mongodb_client(mongodb_uri: str) -> Generator[MongoClient, None, None]:
    client = MongoClient(mongodb_uri, tz_aware=True)
    yield client
    client.close()


@pytest.fixture
def test_database(mongodb_client: MongoClient):
    db_name = "test_hd_notes"
    db = mongodb_client[db_name]
    ensure_indexes(db)
    yield db
    mongodb_client.drop_database(db_name)


@pytest.fixture
def users_collection(test_database):
    return test_database["users"]


@pytest.fixture
def notes_collection(test_database):
    return test_database["notes"]


@pytest.fixture
def outbox() -> list:
    """Emails the fake email service "sent": (to, code, name) tuples."""
    return []


@pytest.fixture
def recording_email_service(outbox: list) -> MagicMock:
    service = MagicMock(spec=EmailService)

    def send_otp_email(email: str, otp: str, user_name: str) -> bool:
        outbox.append((email, otp, user_name))
        return True

    service.send_otp_email.side_effect = send_otp_email
    return service
