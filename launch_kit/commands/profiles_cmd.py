# /*
# Copyright 2026 The Launch Kit Authors.
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

"""Profile catalog subcommands (list, resolve)."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from launch_kit import console
from launch_kit.capabilities import CapabilityModel
from launch_kit.config import load_config, resolve_settings
from launch_kit.errors import NoApplicableProfileError
from launch_kit.intent import intent_from_flags
from launch_kit.profiles import load_catalog, resolve_profile

app = typer.Typer(help="Inspect the deployment profile catalog.")


def _flag(value: bool | None) -> str:
    return "-" if value is None else str(value).lower()


@app.command("list")
def list_profiles(
    profiles_dir: Path | None = typer.Option(None, "--profiles-dir", help="Profile catalog directory"),
) -> None:
    """List catalog profiles and their requirements."""
    settings = resolve_settings()
    catalog = load_catalog(profiles_dir or settings.profiles_dir)

    table = Table(title="Deployment profiles")
    for column in ("Entry", "Plugin", "Fabric", "Deployment", "Multirail", "Spectrum-X", "AI", "SR-IOV", "RDMA", "IB"):
        table.add_column(column)
    for profile in catalog:
        req, caps = profile.profile_requirements, profile.node_capabilities
        table.add_row(
            profile.entry, profile.plugin,
            req.fabric or "-", req.deployment or "-",
            _flag(req.multirail), _flag(req.spectrum_x), _flag(req.ai),
            _flag(caps.sriov), _flag(caps.rdma), _flag(caps.ib),
        )
    console.print(table)


@app.command()
def resolve(
    config: Path | None = typer.Option(None, "--config", help="Capability or user config file"),
    fabric: str = typer.Option("", "--fabric", help="Fabric type"),
    deployment_type: str = typer.Option("", "--deployment-type", help="Deployment type"),
    multirail: bool = typer.Option(False, "--multirail", help="Multirail deployment"),
    spectrum_x: bool = typer.Option(False, "--spectrum-x", help="Spectrum-X deployment"),
    ai: bool = typer.Option(False, "--ai", help="AI deployment"),
    plugin: str = typer.Option("network-operator", "--plugin", help="Plugin whose profiles to consider"),
    profiles_dir: Path | None = typer.Option(None, "--profiles-dir", help="Profile catalog directory"),
) -> None:
    """Show which profile an intent resolves to, or why none does."""
    settings = resolve_settings()
    capabilities = load_config(config).capabilities if config else CapabilityModel()
    intent = intent_from_flags(fabric, deployment_type, multirail, spectrum_x, ai)

    try:
        profile = resolve_profile(intent, capabilities, plugin, profiles_dir or settings.profiles_dir)
    except NoApplicableProfileError as e:
        console.print(f"[red]\u274c No applicable profile for plugin {plugin}[/red]")
        for reason in e.reasons:
            console.print(f"  {reason}")
        raise typer.Exit(1)

    console.print(f"[green]\u2705 {profile.name}[/green] ({profile.directory})")
    if profile.definition.description:
        console.print(f"  {profile.definition.description}")
    for template in profile.template_paths:
        console.print(f"  template: {template.name}")
