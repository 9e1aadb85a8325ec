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

"""kind cluster lifecycle and image loading."""

from __future__ import annotations

import secrets
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Protocol

import docker
import sh
from rich.panel import Panel
from tenacity import retry, stop_after_attempt, wait_fixed

from mcp_fixture import console, logger
from mcp_fixture.constants import (
    CLUSTER_CREATE_RETRY_WAIT_SECONDS,
    CLUSTER_CREATE_WAIT,
    DEFAULT_CLUSTER_CREATE_MAX_RETRIES,
    RANDOM_NAME_LENGTH,
)
from mcp_fixture.errors import ClusterProviderError


class ClusterProvider(Protocol):
    """Opaque cluster lifecycle provider consumed by the fixture."""

    def create(self, name: str, config_path: str | Path | Traversable | None = None) -> None: ...

    def list(self) -> list[str]: ...

    def kubeconfig(self, name: str) -> str: ...

    def destroy(self, name: str) -> None: ...

    def load_image(self, name: str, image: str) -> None: ...


def random_name(prefix: str, length: int = RANDOM_NAME_LENGTH) -> str:
    """Build a randomised cluster name of at most *length* characters.

    Args:
        prefix: Leading part of the name, kept verbatim.
        length: Total name length including the ``-`` separator.

    Returns:
        ``<prefix>-<hex>`` padded to *length*.
    """
    suffix_len = max(length - len(prefix) - 1, 4)
    return f"{prefix}-{secrets.token_hex(suffix_len)[:suffix_len]}"


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Raises:
        ClusterProviderError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise ClusterProviderError(f"Required command '{cmd}' not found. Please install it first.") from err


def ensure_local_image(image: str) -> None:
    """Make sure *image* exists in the local docker daemon, pulling it if missing.

    Raises:
        ClusterProviderError: If the image is neither present nor pullable.
    """
    try:
        docker_client = docker.from_env()
    except docker.errors.DockerException as err:
        raise ClusterProviderError(f"Failed to connect to Docker: {err}") from err
    try:
        try:
            docker_client.images.get(image)
            return
        except docker.errors.ImageNotFound:
            console.print(f"[yellow]\u2139\ufe0f  Pulling {image}...[/yellow]")
        docker_client.images.pull(image)
    except docker.errors.APIError as err:
        raise ClusterProviderError(f"Failed to pull image {image}: {err}") from err
    finally:
        docker_client.close()


class KindProvider:
    """Cluster lifecycle provider driving the ``kind`` CLI."""

    def __init__(self, node_image: str | None = None, max_retries: int = DEFAULT_CLUSTER_CREATE_MAX_RETRIES) -> None:
        self.node_image = node_image
        self.max_retries = max_retries

    def create(self, name: str, config_path: str | Path | Traversable | None = None) -> None:
        """Create a kind cluster with retry logic.

        Args:
            name: Cluster name.
            config_path: Optional kind cluster config file.

        Raises:
            ClusterProviderError: If the cluster cannot be created after all retries.
        """
        require_command("kind")
        console.print(Panel.fit(f"Creating kind cluster '{name}'", style="bold blue"))
        args = ["create", "cluster", "--name", name, "--wait", CLUSTER_CREATE_WAIT]
        if config_path is not None:
            args += ["--config", str(config_path)]
        if self.node_image:
            args += ["--image", self.node_image]

        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(CLUSTER_CREATE_RETRY_WAIT_SECONDS),
            reraise=True,
        )
        def _attempt() -> None:
            if name in self.list():
                sh.kind("delete", "cluster", "--name", name)
                console.print("[yellow]   Removed existing cluster[/yellow]")
            sh.kind(*args)

        try:
            _attempt()
        except sh.ErrorReturnCode as err:
            raise ClusterProviderError(f"failed to create kind cluster {name}: {err.stderr.decode(errors='replace')}") from err
        console.print(f"[green]\u2705 Cluster '{name}' created[/green]")

    def list(self) -> list[str]:
        """Return the names of all kind clusters."""
        try:
            output = str(sh.kind("get", "clusters"))
        except sh.ErrorReturnCode as err:
            raise ClusterProviderError(f"failed to list kind clusters: {err}") from err
        return [line.strip() for line in output.splitlines() if line.strip() and not line.startswith("No kind clusters")]

    def kubeconfig(self, name: str) -> str:
        """Return the external kubeconfig of cluster *name*."""
        try:
            return str(sh.kind("get", "kubeconfig", "--name", name))
        except sh.ErrorReturnCode as err:
            raise ClusterProviderError(f"failed to get kubeconfig of {name}: {err}") from err

    def destroy(self, name: str) -> None:
        """Delete the kind cluster *name*; an absent cluster is only reported."""
        console.print(f"[yellow]\u2139\ufe0f  Deleting kind cluster '{name}'...[/yellow]")
        if name not in self.list():
            console.print(f"[yellow]\u26a0\ufe0f  Cluster '{name}' not found or already deleted[/yellow]")
            return
        try:
            sh.kind("delete", "cluster", "--name", name)
        except sh.ErrorReturnCode as err:
            raise ClusterProviderError(f"failed to delete kind cluster {name}: {err}") from err
        console.print(f"[green]\u2705 Cluster '{name}' deleted[/green]")

    def load_image(self, name: str, image: str) -> None:
        """Load a local docker image into every node of cluster *name*."""
        ensure_local_image(image)
        logger.info("loading image %s into cluster %s", image, name)
        try:
            sh.kind("load", "docker-image", image, "--name", name)
        except sh.ErrorReturnCode as err:
            raise ClusterProviderError(f"failed to load image {image} into {name}: {err}") from err
        console.print(f"[green]\u2713 {image}[/green]")
