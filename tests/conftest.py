from __future__ import annotations

import os

import pytest

from lhserver.core.config.manager import ConfigManager, ConfigFsPaths
from lhserver.core.config.models import DeviceApiConfig
from lhserver.core.credentials.manager import CredentialManager
from lhserver.core.device_api.client import DeviceApiClient
from lhserver.core.events.log_buffer import EventLogBuffer
from .helpers.fakes import FakeBroker, FakeClock, FakeSession, ListSink


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated root with config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    return fs


@pytest.fixture
def config_manager(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, logger=None, read_only=False)
    cm.load_all()
    return cm


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def event_log(clock, sink):
    return EventLogBuffer(capacity=100, sink=sink, clock=clock)


@pytest.fixture
def broker():
    return FakeBroker(("root", "s3cr3t-pass"))


@pytest.fixture
def credentials(broker, event_log):
    cm = CredentialManager(broker, account="lh-server", event_log=event_log)
    cm.acquire()
    return cm


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(credentials, session, event_log):
    return DeviceApiClient(cfg=DeviceApiConfig(), credentials=credentials, session=session, event_log=event_log)

