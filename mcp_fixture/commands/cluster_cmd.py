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

"""Cluster subcommands (kubeconfig, list)."""

from __future__ import annotations

import typer

from mcp_fixture import console
from mcp_fixture.clusters import KindProvider
from mcp_fixture.resolver import resolve_cluster_name

app = typer.Typer(help="Inspect clusters of a running environment.")


@app.command()
def kubeconfig(
    prefix: str = typer.Argument(..., help="Cluster name prefix, e.g. onboarding or mcp"),
) -> None:
    """Print the kubeconfig of the first cluster matching PREFIX."""
    provider = KindProvider()
    typer.echo(provider.kubeconfig(resolve_cluster_name(prefix, provider)), nl=False)


@app.command("list")
def list_clusters() -> None:
    """List all kind clusters."""
    for name in KindProvider().list():
        console.print(name)
