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

"""Tests for the stage engine and the openMCP bootstrap sequence."""

from __future__ import annotations

import pytest

from conftest import FakeClusterProvider, FakeObjectClient
from mcp_fixture.bootstrap import (
    PLATFORM_CLUSTER_KEY,
    Environment,
    OpenMCPSetup,
    StageContext,
    compose,
)
from mcp_fixture.conditions import WaitOptions
from mcp_fixture.config import ClusterProviderSetup, OperatorSetup, ServiceProviderSetup
from mcp_fixture.errors import ClusterProviderError, FixtureError, StageError, WaitTimeoutError
from mcp_fixture.objects import ManagedObject
from mcp_fixture.providers import cluster_provider_ref, cluster_ref, service_provider_ref

FAST = WaitOptions(timeout=1.0, interval=0.01)
READY = {"conditions": [{"type": "Ready", "status": "True"}]}


def _recorder(trace: list[str], name: str, error: Exception | None = None):
    def _stage(ctx: StageContext) -> None:
        trace.append(name)
        if error is not None:
            raise error
    return _stage


# =============================================================================
# Stage engine
# =============================================================================


class TestEnvironment:

    def test_setup_runs_in_order_and_finish_in_reverse(self):
        trace: list[str] = []
        env = (Environment()
               .setup("A", _recorder(trace, "A"))
               .setup("B", _recorder(trace, "B"))
               .finish("X", _recorder(trace, "X"))
               .finish("Y", _recorder(trace, "Y")))
        env.run(_recorder(trace, "body"))
        assert trace == ["A", "B", "body", "Y", "X"]

    def test_failing_setup_short_circuits_and_still_tears_down(self):
        trace: list[str] = []
        boom = RuntimeError("boom")
        env = (Environment()
               .setup("A", _recorder(trace, "A"))
               .setup("B", _recorder(trace, "B", boom))
               .setup("C", _recorder(trace, "C"))
               .finish("X", _recorder(trace, "X"))
               .finish("Y", _recorder(trace, "Y")))
        with pytest.raises(StageError) as exc_info:
            env.run(_recorder(trace, "body"))
        assert trace == ["A", "B", "Y", "X"]
        assert exc_info.value.stage == "B"
        assert exc_info.value.cause is boom
        assert "setup stage 'B' failed: boom" in str(exc_info.value)

    def test_teardown_runs_every_stage_despite_errors(self):
        trace: list[str] = []
        env = (Environment()
               .finish("X", _recorder(trace, "X", ValueError("x")))
               .finish("Y", _recorder(trace, "Y"))
               .finish("Z", _recorder(trace, "Z", ClusterProviderError("z"))))
        failures = env.run_finish()
        assert trace == ["Z", "Y", "X"]
        assert [name for name, _ in failures] == ["Z", "X"]
        assert isinstance(failures[0][1], ClusterProviderError)

    def test_body_error_propagates_after_teardown(self):
        trace: list[str] = []
        env = Environment().finish("X", _recorder(trace, "X"))
        with pytest.raises(KeyError):
            env.run(_recorder(trace, "body", KeyError("missing")))
        assert trace == ["body", "X"]

    def test_registration_is_frozen_once_started(self):
        env = Environment().setup("A", lambda ctx: None)
        env.run_setup()
        with pytest.raises(RuntimeError):
            env.setup("B", lambda ctx: None)
        with pytest.raises(RuntimeError):
            env.finish("X", lambda ctx: None)

    def test_no_reentrancy(self):
        env = Environment()
        env.run()
        with pytest.raises(RuntimeError):
            env.run_setup()
        with pytest.raises(RuntimeError):
            env.run_finish()

    def test_context_is_shared_between_stages(self):
        def produce(ctx: StageContext) -> None:
            ctx.values["answer"] = 42

        seen: list[int] = []
        env = Environment().setup("produce", produce).setup("consume", lambda ctx: seen.append(ctx.values["answer"]))
        env.run()
        assert seen == [42]

    def test_compose_stops_at_first_error(self):
        trace: list[str] = []
        fn = compose(_recorder(trace, "1"), _recorder(trace, "2", ValueError("2")), _recorder(trace, "3"))
        with pytest.raises(ValueError):
            fn(StageContext())
        assert trace == ["1", "2"]


# =============================================================================
# openMCP bootstrap
# =============================================================================


@pytest.fixture
def platform_client() -> FakeObjectClient:
    client = FakeObjectClient()
    client.create_status = {
        "Deployment": {"conditions": [{"type": "Available", "status": "True"}]},
        "ClusterProvider": READY,
        "ServiceProvider": READY,
    }
    # the kind cluster provider creates the onboarding cluster object
    client.add(cluster_ref("onboarding", "openmcp-system"), status=READY)
    return client


@pytest.fixture
def openmcp_setup() -> OpenMCPSetup:
    return OpenMCPSetup(
        namespace="openmcp-system",
        operator=OperatorSetup(image="ghcr.io/openmcp-project/images/openmcp-operator:v0.13.0", wait=FAST),
        cluster_providers=[ClusterProviderSetup(name="kind", image="cp-kind:v1", wait=FAST)],
        service_providers=[
            ServiceProviderSetup(name="crossplane", image="sp-crossplane:v1", wait=FAST),
            ServiceProviderSetup(name="landscaper", image="sp-landscaper:v1", wait=FAST),
        ],
        wait=FAST,
    )


def _bootstrap(setup: OpenMCPSetup, provider: FakeClusterProvider, client: FakeObjectClient) -> Environment:
    return setup.bootstrap(Environment(), provider, client_factory=lambda kubeconfig: client)


class TestOpenMCPSetup:

    def test_stage_registration_order(self, openmcp_setup, fake_provider, platform_client):
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        assert env.setup_stages == [
            "Creating platform cluster",
            "Creating namespace",
            "Installing openMCP operator",
            "Installing cluster providers",
            "Loading service provider images",
            "Installing service providers",
            "Verifying environment",
        ]
        assert env.finish_stages == [
            "destroy platform cluster",
            "delete cluster provider kind",
            "delete onboarding cluster",
            "delete service provider crossplane",
            "delete service provider landscaper",
        ]

    def test_platform_cluster_name(self, openmcp_setup, fake_provider, platform_client):
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        name = env.context.values[PLATFORM_CLUSTER_KEY]
        assert name.startswith("platform-")
        assert len(name) == 16

    def test_full_setup(self, openmcp_setup, fake_provider, platform_client):
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        env.run_setup()
        platform = env.context.values[PLATFORM_CLUSTER_KEY]

        assert fake_provider.clusters == [platform]
        assert ("load_image", platform, "sp-crossplane:v1") in fake_provider.calls
        assert ("load_image", platform, "sp-landscaper:v1") in fake_provider.calls
        assert platform_client.has(ManagedObject.ref("v1", "Namespace", "openmcp-system"))
        assert platform_client.has(ManagedObject.ref("apps/v1", "Deployment", "openmcp-operator", "openmcp-system"))
        assert platform_client.has(cluster_provider_ref("kind"))
        assert platform_client.has(service_provider_ref("crossplane"))

        created = [target for verb, target in platform_client.calls if verb == "create"]
        assert created == [
            "Namespace/openmcp-system",
            "ServiceAccount/openmcp-operator",
            "ClusterRoleBinding/openmcp-operator",
            "Deployment/openmcp-operator",
            "ClusterProvider/kind",
            "ServiceProvider/crossplane",
            "ServiceProvider/landscaper",
        ]

        handle = openmcp_setup.handle(env)
        assert handle.platform_cluster == platform
        assert handle.namespace == "openmcp-system"
        assert handle.platform.cluster_name == platform

    def test_teardown_order(self, openmcp_setup, fake_provider, platform_client):
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        env.run_setup()
        platform_client.calls.clear()
        assert env.run_finish() == []

        deleted = [target for verb, target in platform_client.calls if verb == "delete"]
        assert deleted == [
            "ServiceProvider/landscaper",
            "ServiceProvider/crossplane",
            "Cluster/onboarding",
            "ClusterProvider/kind",
        ]
        assert fake_provider.calls[-1] == ("destroy", env.context.values[PLATFORM_CLUSTER_KEY])
        assert fake_provider.clusters == []

    def test_operator_not_available_stops_setup(self, openmcp_setup, fake_provider, platform_client):
        del platform_client.create_status["Deployment"]
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        with pytest.raises(StageError) as exc_info:
            env.run()
        assert exc_info.value.stage == "Installing openMCP operator"
        assert isinstance(exc_info.value.cause, WaitTimeoutError)
        assert not platform_client.has(cluster_provider_ref("kind"))
        assert fake_provider.clusters == []

    def test_platform_creation_failure_skips_deletes(self, openmcp_setup, fake_provider, platform_client):
        fake_provider.fail["create"] = ClusterProviderError("kind exploded")
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        with pytest.raises(StageError):
            env.run_setup()
        assert env.run_finish() == []
        assert platform_client.calls == []
        assert [c[0] for c in fake_provider.calls] == ["create", "destroy"]

    def test_teardown_continues_after_provider_error(self, openmcp_setup, fake_provider, platform_client):
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        env.run_setup()
        fake_provider.fail["destroy"] = ClusterProviderError("docker gone")
        platform_client.get_errors["crossplane"] = FixtureError("api down")
        failures = env.run_finish()
        assert [name for name, _ in failures] == ["delete service provider crossplane", "destroy platform cluster"]
        assert not platform_client.has(cluster_provider_ref("kind"))

    def test_handle_requires_setup(self, openmcp_setup, fake_provider, platform_client):
        env = _bootstrap(openmcp_setup, fake_provider, platform_client)
        with pytest.raises(FixtureError):
            openmcp_setup.handle(env)
