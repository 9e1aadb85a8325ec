#!/usr/bin/env python3
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

"""
cli.py - CLI for ephemeral openMCP test environments.

Subcommands:
    env up       Create the platform cluster and install openMCP
    env down     Destroy kept platform clusters by prefix
    cluster      Inspect clusters (kubeconfig, list)
    config       Show the effective configuration

Examples:
    # Full setup and teardown as a smoke check
    mcp-fixture env up

    # Keep the environment for manual testing
    mcp-fixture env up --keep

    # Talk to the onboarding cluster
    mcp-fixture cluster kubeconfig onboarding > onboarding.kubeconfig
"""

from __future__ import annotations

import sys

import typer

from mcp_fixture import configure_logging, console
from mcp_fixture.commands import cluster_cmd, env_cmd
from mcp_fixture.config import FixtureSettings, display_config

app = typer.Typer(
    help="Ephemeral openMCP environments for end-to-end tests.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Initialize logging for all subcommands."""
    configure_logging("DEBUG" if verbose else FixtureSettings().log_level)


@app.command()
def config() -> None:
    """Display the effective configuration."""
    display_config(FixtureSettings())


app.add_typer(env_cmd.app, name="env")
app.add_typer(cluster_cmd.app, name="cluster")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
