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

"""Locate provisioned clusters by name prefix and build configs bound to them."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from mcp_fixture import logger
from mcp_fixture.client import ClusterConfig, KubeObjectClient, ObjectClient
from mcp_fixture.clusters import ClusterProvider, KindProvider
from mcp_fixture.conditions import WaitOptions
from mcp_fixture.constants import MCP_CLUSTER_PREFIX, NS_DEFAULT, ONBOARDING_CLUSTER_PREFIX
from mcp_fixture.errors import FixtureError, ResolutionError
from mcp_fixture.objects import ManagedObject
from mcp_fixture.resources import create_all_and_wait

ClientFactory = Callable[[str], ObjectClient]


def resolve_cluster_name(prefix: str, provider: ClusterProvider) -> str:
    """Return the first known cluster whose name starts with *prefix*.

    Raises:
        ResolutionError: If no cluster matches.
    """
    for name in provider.list():
        if name.startswith(prefix):
            return name
    raise ResolutionError(f"no cluster found with prefix {prefix}")


def config_by_prefix(
    prefix: str,
    namespace: str = NS_DEFAULT,
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> ClusterConfig:
    """Build a config for the cluster identified by *prefix*, scoped to *namespace*.

    Args:
        prefix: Cluster name prefix, e.g. ``onboarding``.
        namespace: Target namespace for applied objects.
        provider: Cluster lifecycle provider, defaults to kind.
        client_factory: Builds a client from kubeconfig text.

    Raises:
        ResolutionError: If no cluster matches *prefix*.
    """
    provider = provider or KindProvider()
    name = resolve_cluster_name(prefix, provider)
    client = client_factory(provider.kubeconfig(name))
    logger.debug("resolved prefix %s to cluster %s", prefix, name)
    return ClusterConfig(client=client, namespace=namespace, cluster_name=name)


def onboarding_config(
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> ClusterConfig:
    """Config for the onboarding cluster and the default namespace.

    With several onboarding clusters, use ``config_by_prefix`` instead.
    """
    return config_by_prefix(ONBOARDING_CLUSTER_PREFIX, NS_DEFAULT, provider, client_factory)


def mcp_config(
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> ClusterConfig:
    """Config for the MCP cluster and the default namespace.

    With several MCPs, use ``config_by_prefix`` instead.
    """
    return config_by_prefix(MCP_CLUSTER_PREFIX, NS_DEFAULT, provider, client_factory)


def _import_from_dir(cluster: ClusterConfig, directory: str | Path, options: WaitOptions | None) -> list[ManagedObject]:
    try:
        return create_all_and_wait(cluster, Path(directory), options)
    except FixtureError:
        logger.error("failed to create objects from %s on cluster %s", directory, cluster.cluster_name)
        raise


def import_to_onboarding_cluster(
    directory: str | Path,
    options: WaitOptions | None = None,
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> list[ManagedObject]:
    """Apply every manifest in *directory* to the onboarding cluster."""
    return _import_from_dir(onboarding_config(provider, client_factory), directory, options)


def import_to_mcp_cluster(
    directory: str | Path,
    options: WaitOptions | None = None,
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> list[ManagedObject]:
    """Apply every manifest in *directory* to the MCP cluster."""
    return _import_from_dir(mcp_config(provider, client_factory), directory, options)
