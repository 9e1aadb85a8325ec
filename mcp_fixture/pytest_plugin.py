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

"""pytest fixtures exposing one openMCP environment per test session.

Enable with ``-p mcp_fixture.pytest_plugin`` or through the ``pytest11``
entry point. Override ``openmcp_setup`` in a conftest to change the
installed components.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from mcp_fixture import configure_logging
from mcp_fixture.bootstrap import Environment, FixtureHandle, OpenMCPSetup
from mcp_fixture.client import ClusterConfig, KubeObjectClient
from mcp_fixture.clusters import ClusterProvider, KindProvider
from mcp_fixture.config import FixtureSettings
from mcp_fixture.errors import StageError
from mcp_fixture.resolver import ClientFactory, mcp_config, onboarding_config


@pytest.fixture(scope="session")
def openmcp_settings() -> FixtureSettings:
    settings = FixtureSettings()
    configure_logging(settings.log_level)
    return settings


@pytest.fixture(scope="session")
def openmcp_setup(openmcp_settings: FixtureSettings) -> OpenMCPSetup:
    return OpenMCPSetup.from_settings(openmcp_settings)


@pytest.fixture(scope="session")
def openmcp_provider(openmcp_settings: FixtureSettings) -> KindProvider:
    return KindProvider(
        node_image=openmcp_settings.kind_node_image or None,
        max_retries=openmcp_settings.cluster_create_retries,
    )


@pytest.fixture(scope="session")
def openmcp_client_factory() -> ClientFactory:
    return KubeObjectClient.from_kubeconfig


@contextmanager
def openmcp_session(
    setup: OpenMCPSetup,
    provider: ClusterProvider,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> Iterator[FixtureHandle]:
    """Run setup, yield the live handle, then always tear down.

    A failed or interrupted setup is torn down at once. A failed setup
    fails the requesting test without running its body; anything else,
    such as KeyboardInterrupt, propagates after the teardown.
    """
    env = setup.bootstrap(Environment(), provider, client_factory)
    try:
        env.run_setup()
    except BaseException as err:
        failures = env.run_finish()
        if isinstance(err, StageError):
            pytest.fail(f"openMCP environment setup failed: {err} ({len(failures)} teardown failures)", pytrace=False)
        raise
    try:
        yield setup.handle(env)
    finally:
        env.run_finish()


@pytest.fixture(scope="session")
def openmcp_environment(
    openmcp_setup: OpenMCPSetup,
    openmcp_provider: ClusterProvider,
    openmcp_client_factory: ClientFactory,
) -> Iterator[FixtureHandle]:
    """Bring up the platform once per session and always tear it down."""
    with openmcp_session(openmcp_setup, openmcp_provider, openmcp_client_factory) as handle:
        yield handle


@pytest.fixture
def onboarding_cluster(
    openmcp_environment: FixtureHandle,
    openmcp_provider: ClusterProvider,
    openmcp_client_factory: ClientFactory,
) -> ClusterConfig:
    return onboarding_config(openmcp_provider, openmcp_client_factory)


@pytest.fixture
def mcp_cluster(
    openmcp_environment: FixtureHandle,
    openmcp_provider: ClusterProvider,
    openmcp_client_factory: ClientFactory,
) -> ClusterConfig:
    return mcp_config(openmcp_provider, openmcp_client_factory)
