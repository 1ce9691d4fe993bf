import pytest

import doctx
import unitserver


@pytest.fixture
def configuration():
    return unitserver.unit_configuration()


@pytest.fixture
def database():
    return unitserver.UnitDatabase()


@pytest.fixture
def local_transport(database):
    return unitserver.LocalTransport(database)


@pytest.fixture
def client(local_transport, configuration):
    return doctx.Client('unittest', local_transport, configuration)


@pytest.fixture
def run_server(database):

    server = unitserver.Server(database)

    yield server

    server.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
