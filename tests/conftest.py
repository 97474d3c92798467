"""Shared test fixtures"""

import pytest

from kotsadm_installer.libs.core.models import DeployOptions
from fakes import FakeCluster


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def options():
    return DeployOptions(namespace="ns-a", wait_for_ready=False)
