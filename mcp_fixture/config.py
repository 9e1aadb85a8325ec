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

"""Configuration classes and component setup models."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from mcp_fixture import console
from mcp_fixture.conditions import WaitOptions
from mcp_fixture.constants import (
    DEFAULT_CLUSTER_CREATE_MAX_RETRIES,
    DEFAULT_OPENMCP_NAMESPACE,
    DEFAULT_OPERATOR_ENVIRONMENT,
    DEFAULT_OPERATOR_NAME,
    DEFAULT_PLATFORM_NAME,
    DEFAULT_WAIT_INTERVAL_SECONDS,
    DEFAULT_WAIT_TIMEOUT_SECONDS,
    PLATFORM_CLUSTER_PREFIX,
    dep_image,
    dep_value,
)


# ============================================================================
# Configuration classes
# ============================================================================

class FixtureSettings(BaseSettings):
    """Fixture configuration, auto-loaded from OPENMCP_E2E_* env vars.

    Attributes:
        namespace: Namespace on the platform cluster for the operator and providers.
        platform_prefix: Name prefix of the randomised platform cluster.
        operator_name: Name of the operator deployment.
        operator_image: Operator container image.
        operator_environment: Environment name passed to the operator.
        platform_name: Platform name passed to the operator.
        kind_node_image: kind node image, or empty for the kind default.
        cluster_create_retries: Maximum platform cluster creation attempts.
        wait_timeout: Default wait deadline in seconds.
        wait_interval: Default poll interval in seconds.
        log_level: Log level of the package logger.
    """

    model_config = SettingsConfigDict(env_prefix="OPENMCP_E2E_", extra="ignore")

    namespace: str = DEFAULT_OPENMCP_NAMESPACE
    platform_prefix: str = Field(default=PLATFORM_CLUSTER_PREFIX, pattern=r"^[a-z][a-z0-9-]*$")
    operator_name: str = DEFAULT_OPERATOR_NAME
    operator_image: str = dep_image("openmcp_operator")
    operator_environment: str = DEFAULT_OPERATOR_ENVIRONMENT
    platform_name: str = DEFAULT_PLATFORM_NAME
    kind_node_image: str = dep_value("kind", "node_image", default="")
    cluster_create_retries: int = Field(default=DEFAULT_CLUSTER_CREATE_MAX_RETRIES, ge=1, le=10)
    wait_timeout: float = Field(default=DEFAULT_WAIT_TIMEOUT_SECONDS, gt=0)
    wait_interval: float = Field(default=DEFAULT_WAIT_INTERVAL_SECONDS, gt=0)
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR)$")

    def wait_options(self) -> WaitOptions:
        return WaitOptions(timeout=self.wait_timeout, interval=self.wait_interval)


# ============================================================================
# Component setup models
# ============================================================================

class OperatorSetup(BaseModel):
    """Parameters rendered into the operator install template."""

    name: str = DEFAULT_OPERATOR_NAME
    namespace: str = DEFAULT_OPENMCP_NAMESPACE
    image: str
    environment: str = DEFAULT_OPERATOR_ENVIRONMENT
    platform_name: str = DEFAULT_PLATFORM_NAME
    wait: WaitOptions | None = None


class ClusterProviderSetup(BaseModel):
    """A cluster provider to install on the platform cluster."""

    name: str
    image: str
    wait: WaitOptions | None = None


class ServiceProviderSetup(BaseModel):
    """A service provider to install on the platform cluster."""

    name: str
    image: str
    wait: WaitOptions | None = None


def default_cluster_providers() -> list[ClusterProviderSetup]:
    return [
        ClusterProviderSetup(name=name, image=dep_image("cluster_providers", name))
        for name in dep_value("cluster_providers", default={})
    ]


def default_service_providers() -> list[ServiceProviderSetup]:
    return [
        ServiceProviderSetup(name=name, image=dep_image("service_providers", name))
        for name in dep_value("service_providers", default={})
    ]


# ============================================================================
# Display
# ============================================================================

def display_config(settings: FixtureSettings) -> None:
    """Print the effective fixture configuration."""
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print("[yellow]Platform:[/yellow]")
    console.print(f"  platform_prefix : {settings.platform_prefix}")
    console.print(f"  namespace       : {settings.namespace}")
    console.print(f"  kind_node_image : {settings.kind_node_image or '(kind default)'}")
    console.print("[yellow]Operator:[/yellow]")
    console.print(f"  operator_name   : {settings.operator_name}")
    console.print(f"  operator_image  : {settings.operator_image}")
    console.print(f"  environment     : {settings.operator_environment}")
    console.print(f"  platform_name   : {settings.platform_name}")
    console.print("[yellow]Providers:[/yellow]")
    for cp in default_cluster_providers():
        console.print(f"  cluster   {cp.name:<8}: {cp.image}")
    for sp in default_service_providers():
        console.print(f"  service   {sp.name:<8}: {sp.image}")
    console.print("[yellow]Waits:[/yellow]")
    console.print(f"  wait_timeout    : {settings.wait_timeout:g}s")
    console.print(f"  wait_interval   : {settings.wait_interval:g}s")
