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

"""Cluster providers, service providers, clusters and managed control planes."""

from __future__ import annotations

from pathlib import Path

from mcp_fixture import logger
from mcp_fixture.client import ClusterConfig, KubeObjectClient
from mcp_fixture.clusters import ClusterProvider
from mcp_fixture.conditions import NamedCondition, Predicate, StatusKey, WaitOptions, wait_for
from mcp_fixture.config import ClusterProviderSetup, ServiceProviderSetup
from mcp_fixture.constants import (
    API_CLUSTERS,
    API_CORE_V2,
    API_OPENMCP,
    CONDITION_READY,
    CONDITION_TRUE,
    KIND_CLUSTER,
    KIND_CLUSTER_PROVIDER,
    KIND_MCP,
    KIND_SERVICE_PROVIDER,
    MCP_PHASE_KEY,
    MCP_PHASE_READY,
    NS_DEFAULT,
)
from mcp_fixture.objects import ManagedObject
from mcp_fixture.resolver import (
    ClientFactory,
    import_to_mcp_cluster,
    import_to_onboarding_cluster,
    onboarding_config,
)
from mcp_fixture.resources import create_from_template, delete_object

CLUSTER_PROVIDER_TEMPLATE = """
apiVersion: openmcp.cloud/v1alpha1
kind: ClusterProvider
metadata:
  name: {{.name}}
spec:
  image: {{.image}}
  extraVolumeMounts:
    - mountPath: /var/run/docker.sock
      name: docker
  extraVolumes:
    - name: docker
      hostPath:
        path: /var/run/host-docker.sock
        type: Socket
"""

SERVICE_PROVIDER_TEMPLATE = """
apiVersion: openmcp.cloud/v1alpha1
kind: ServiceProvider
metadata:
  name: {{.name}}
spec:
  image: {{.image}}
"""

MCP_TEMPLATE = """
apiVersion: core.openmcp.cloud/v2alpha1
kind: ManagedControlPlaneV2
metadata:
  name: {{.name}}
spec:
  iam: {}
"""

READY = NamedCondition(CONDITION_READY, CONDITION_TRUE)
MCP_PHASE_READY_STATUS = StatusKey(MCP_PHASE_KEY, MCP_PHASE_READY)


# ============================================================================
# References
# ============================================================================

def cluster_provider_ref(name: str) -> ManagedObject:
    return ManagedObject.ref(API_OPENMCP, KIND_CLUSTER_PROVIDER, name)


def service_provider_ref(name: str) -> ManagedObject:
    return ManagedObject.ref(API_OPENMCP, KIND_SERVICE_PROVIDER, name)


def cluster_ref(name: str, namespace: str) -> ManagedObject:
    return ManagedObject.ref(API_CLUSTERS, KIND_CLUSTER, name, namespace)


def mcp_ref(name: str, namespace: str = NS_DEFAULT) -> ManagedObject:
    return ManagedObject.ref(API_CORE_V2, KIND_MCP, name, namespace)


# ============================================================================
# Providers
# ============================================================================

def install_cluster_provider(cluster: ClusterConfig, setup: ClusterProviderSetup) -> ManagedObject:
    """Create a cluster provider on the platform cluster and wait until it is ready."""
    logger.info("create cluster provider %s", setup.name)
    obj = create_from_template(cluster, CLUSTER_PROVIDER_TEMPLATE, setup)
    return wait_for(obj, cluster, READY, setup.wait)


def delete_cluster_provider(cluster: ClusterConfig, name: str, options: WaitOptions | None = None) -> None:
    """Delete a cluster provider and, with *options*, wait until it is gone."""
    logger.info("delete cluster provider: %s", name)
    delete_object(cluster, cluster_provider_ref(name), options)


def install_service_provider(cluster: ClusterConfig, setup: ServiceProviderSetup) -> ManagedObject:
    """Create a service provider on the platform cluster and wait until it is ready."""
    logger.info("create service provider: %s", setup.name)
    obj = create_from_template(cluster, SERVICE_PROVIDER_TEMPLATE, setup)
    return wait_for(obj, cluster, READY, setup.wait)


def delete_service_provider(cluster: ClusterConfig, name: str, options: WaitOptions | None = None) -> None:
    """Delete a service provider and, with *options*, wait until it is gone."""
    logger.info("delete service provider: %s", name)
    delete_object(cluster, service_provider_ref(name), options)


def import_service_provider_apis(
    directory: str | Path,
    options: WaitOptions | None = None,
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> list[ManagedObject]:
    """Apply every resource in *directory* to the onboarding cluster."""
    logger.info("apply service provider resources to onboarding cluster from %s ...", directory)
    return import_to_onboarding_cluster(directory, options, provider, client_factory)


def import_domain_apis(
    directory: str | Path,
    options: WaitOptions | None = None,
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> list[ManagedObject]:
    """Apply every resource in *directory* to the MCP cluster."""
    logger.info("apply service provider resources to MCP cluster from %s ...", directory)
    return import_to_mcp_cluster(directory, options, provider, client_factory)


# ============================================================================
# Clusters
# ============================================================================

def cluster_ready(cluster: ClusterConfig, name: str, namespace: str, options: WaitOptions | None = None) -> None:
    """Wait until the referenced Cluster object reports Ready."""
    wait_for(cluster_ref(name, namespace), cluster, READY, options)
    logger.info("cluster ready: %s/%s", namespace, name)


def delete_cluster(cluster: ClusterConfig, name: str, namespace: str, options: WaitOptions | None = None) -> None:
    """Delete the referenced Cluster object."""
    logger.info("delete cluster: %s/%s", namespace, name)
    delete_object(cluster, cluster_ref(name, namespace), options)


# ============================================================================
# Managed control planes
# ============================================================================

def create_mcp(
    name: str,
    options: WaitOptions | None = None,
    readiness: Predicate = MCP_PHASE_READY_STATUS,
    cluster: ClusterConfig | None = None,
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> ManagedObject:
    """Create an MCP on the onboarding cluster and wait until it is ready.

    Args:
        name: MCP name.
        options: Wait deadline; defaults to ``WaitOptions()``.
        readiness: Readiness predicate. Platform versions differ between
            ``status.phase == "Ready"`` and a ``Ready`` condition, so the
            caller picks.
        cluster: Onboarding cluster config, resolved by prefix when omitted.
        provider: Provider used to resolve the onboarding cluster when
            *cluster* is omitted.
        client_factory: Builds the onboarding client from kubeconfig text.
    """
    logger.info("create MCP: %s", name)
    cluster = cluster or onboarding_config(provider, client_factory)
    obj = create_from_template(cluster, MCP_TEMPLATE, {"name": name})
    return wait_for(obj, cluster, readiness, options or WaitOptions())


def delete_mcp(
    name: str,
    options: WaitOptions | None = None,
    cluster: ClusterConfig | None = None,
    provider: ClusterProvider | None = None,
    client_factory: ClientFactory = KubeObjectClient.from_kubeconfig,
) -> None:
    """Delete an MCP on the onboarding cluster and, with *options*, wait until it is gone."""
    logger.info("delete MCP: %s", name)
    cluster = cluster or onboarding_config(provider, client_factory)
    delete_object(cluster, mcp_ref(name, cluster.namespace), options)
