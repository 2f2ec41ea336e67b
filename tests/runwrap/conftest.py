import pytest

from tests.runwrap.archive_helpers import RUN_SCRIPT, ArchiveServer, make_tarball


@pytest.fixture
def run_tarball():
    return make_tarball({"run": RUN_SCRIPT, "README.md": b"run\n", "LICENSE": b"MIT\n"})


@pytest.fixture
def archive_server():
    return ArchiveServer()


@pytest.fixture
def http_client(archive_server):
    client = archive_server.client()
    yield client
    client.close()
