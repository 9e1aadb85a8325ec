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

"""Environment subcommands (up, down)."""

from __future__ import annotations

import typer

from mcp_fixture import console, logger
from mcp_fixture.bootstrap import Environment, OpenMCPSetup, StageContext
from mcp_fixture.client import ClusterConfig, KubeObjectClient
from mcp_fixture.clusters import KindProvider
from mcp_fixture.config import FixtureSettings
from mcp_fixture.constants import PLATFORM_CLUSTER_PREFIX
from mcp_fixture.errors import FixtureError

app = typer.Typer(help="Bring openMCP test environments up and down.")


@app.command()
def up(
    keep: bool = typer.Option(
        False, "--keep", help="Leave the environment running after verification"),
    namespace: str | None = typer.Option(
        None, "--namespace", help="Platform namespace (overrides OPENMCP_E2E_NAMESPACE)"),
    operator_image: str | None = typer.Option(
        None, "--operator-image", help="openMCP operator image"),
) -> None:
    """Create the platform cluster and install the openMCP components.

    Without --keep the environment is torn down again once verified.
    """
    settings = FixtureSettings()
    overrides = {k: v for k, v in {"namespace": namespace, "operator_image": operator_image}.items() if v is not None}
    if overrides:
        settings = settings.model_copy(update=overrides)
    setup = OpenMCPSetup.from_settings(settings)
    provider = KindProvider(node_image=settings.kind_node_image or None, max_retries=settings.cluster_create_retries)
    env = setup.bootstrap(Environment(), provider, KubeObjectClient.from_kubeconfig)

    if keep:
        try:
            env.run_setup()
        except BaseException:
            env.run_finish()
            raise
        handle = setup.handle(env)
        console.print(f"[green]\u2705 Environment kept: platform cluster '{handle.platform_cluster}'[/green]")
        console.print(f"   tear down with: mcp-fixture env down --prefix {handle.platform_cluster}")
        return

    env.run()
    console.print("[green]\u2705 Environment verified and torn down[/green]")


def _platform_config(provider: KindProvider, name: str, namespace: str) -> ClusterConfig | None:
    try:
        client = KubeObjectClient.from_kubeconfig(provider.kubeconfig(name))
    except FixtureError as err:
        logger.warning("cannot reach platform cluster %s, destroying it without cleanup: %s", name, err)
        return None
    return ClusterConfig(client=client, namespace=namespace, cluster_name=name)


@app.command()
def down(
    prefix: str = typer.Option(
        PLATFORM_CLUSTER_PREFIX, "--prefix", help="Tear down every kind platform cluster with this name prefix"),
) -> None:
    """Tear down environments left behind by ``env up --keep``.

    Service providers, the onboarding cluster and cluster providers are
    deleted first so that the clusters they created are removed too.
    """
    setup = OpenMCPSetup.from_settings(FixtureSettings())
    provider = KindProvider()
    names = [name for name in provider.list() if name.startswith(prefix)]
    if not names:
        console.print(f"[yellow]\u26a0\ufe0f  No kind clusters with prefix '{prefix}'[/yellow]")
        return
    for name in names:
        env = Environment(StageContext(config=_platform_config(provider, name, setup.namespace)))
        failures = setup.teardown(env, provider, name).run_finish()
        if failures:
            console.print(f"[yellow]\u26a0\ufe0f  {name}: {len(failures)} teardown step(s) failed[/yellow]")
        else:
            console.print(f"[green]\u2705 Environment {name} torn down[/green]")
