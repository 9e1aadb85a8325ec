# /*
# Copyright 2026 The OpenMCP Testing Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Tests for the session fixture lifecycle."""

from __future__ import annotations

import pytest

from conftest import FakeClusterProvider, FakeObjectClient
from mcp_fixture.bootstrap import FixtureHandle, OpenMCPSetup
from mcp_fixture.client import ClusterConfig
from mcp_fixture.conditions import WaitOptions
from mcp_fixture.config import OperatorSetup
from mcp_fixture.errors import ClusterProviderError
from mcp_fixture.providers import cluster_ref
from mcp_fixture.pytest_plugin import mcp_cluster, onboarding_cluster, openmcp_session  # noqa: F401

FAST = WaitOptions(timeout=1.0, interval=0.01)


@pytest.fixture
def setup() -> OpenMCPSetup:
    return OpenMCPSetup(operator=OperatorSetup(image="op:v1", wait=FAST), wait=FAST)


@pytest.fixture
def platform_client() -> FakeObjectClient:
    client = FakeObjectClient()
    client.create_status["Deployment"] = {"conditions": [{"type": "Available", "status": "True"}]}
    client.add(cluster_ref("onboarding", "openmcp-system"), status={"conditions": [{"type": "Ready", "status": "True"}]})
    return client


def test_session_yields_handle_and_tears_down(setup, fake_provider, platform_client):
    with openmcp_session(setup, fake_provider, lambda kubeconfig: platform_client) as handle:
        assert handle.platform_cluster in fake_provider.clusters
        assert handle.platform.namespace == "openmcp-system"
    assert fake_provider.clusters == []


def test_session_tears_down_when_the_body_fails(setup, fake_provider, platform_client):
    with pytest.raises(AssertionError):
        with openmcp_session(setup, fake_provider, lambda kubeconfig: platform_client):
            raise AssertionError("test body failed")
    assert fake_provider.clusters == []


def test_setup_failure_fails_without_running_the_body(setup, platform_client):
    provider = FakeClusterProvider()
    provider.fail["create"] = ClusterProviderError("kind exploded")
    body_ran = False
    with pytest.raises(pytest.fail.Exception, match="setup stage 'Creating platform cluster' failed"):
        with openmcp_session(setup, provider, lambda kubeconfig: platform_client):
            body_ran = True
    assert not body_ran
    assert provider.calls[-1][0] == "destroy"


def test_interrupted_setup_still_tears_down(setup, fake_provider, platform_client):
    def interrupt(count: int) -> None:
        if count == 1:
            raise KeyboardInterrupt

    # first lookup is the operator readiness wait
    platform_client.get_hook = interrupt
    with pytest.raises(KeyboardInterrupt):
        with openmcp_session(setup, fake_provider, lambda kubeconfig: platform_client):
            pytest.fail("body must not run")
    assert fake_provider.calls[-1][0] == "destroy"
    assert fake_provider.clusters == []


# =============================================================================
# cluster fixtures
# =============================================================================

CLUSTERS = ["platform-1a2b3c4", "onboarding-abcdef", "mcp-xyz"]


@pytest.fixture
def openmcp_provider() -> FakeClusterProvider:
    return FakeClusterProvider(CLUSTERS)


@pytest.fixture
def kubeconfigs() -> list[str]:
    return []


@pytest.fixture
def openmcp_client_factory(kubeconfigs):
    def factory(kubeconfig: str) -> FakeObjectClient:
        kubeconfigs.append(kubeconfig)
        return FakeObjectClient()
    return factory


@pytest.fixture
def openmcp_environment(setup, platform_client) -> FixtureHandle:
    platform = ClusterConfig(client=platform_client, namespace=setup.namespace, cluster_name=CLUSTERS[0])
    return FixtureHandle(platform_cluster=CLUSTERS[0], namespace=setup.namespace, platform=platform, setup=setup)


def test_onboarding_cluster_fixture(onboarding_cluster, kubeconfigs):
    assert onboarding_cluster.cluster_name == "onboarding-abcdef"
    assert onboarding_cluster.namespace == "default"
    assert kubeconfigs == ["kubeconfig-of-onboarding-abcdef"]


def test_mcp_cluster_fixture(mcp_cluster, kubeconfigs):
    assert mcp_cluster.cluster_name == "mcp-xyz"
    assert kubeconfigs == ["kubeconfig-of-mcp-xyz"]
