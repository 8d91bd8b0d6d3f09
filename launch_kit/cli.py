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

"""
cli.py - l8k, the Kubernetes launch kit for network fabric provisioning.

The root command runs the workflow:
    1. discover cluster capabilities (or read a user config)
    2. select a deployment profile per plugin from flags or a prompt
    3. generate the deployment files
    4. optionally deploy them

Subcommands:
    profiles   Inspect the profile catalog (list, resolve)
    version    Print the version and build information

Environment Variables:
    Runtime settings can be overridden via L8K_* environment variables:
    - L8K_POLL_INTERVAL (default: 3)
    - L8K_PROBE_TIMEOUT (default: 300)
    - L8K_FOUNDATION_TIMEOUT (default: 900)
    - L8K_PROFILES_DIR (default: the packaged catalog)
    - And more (see RuntimeSettings for the full list)

Examples:
    # Discover the cluster and save its capabilities
    l8k --discover-cluster-config --kubeconfig ~/.kube/config

    # Generate and deploy an SR-IOV profile from a saved capability file
    l8k --user-config cluster-config.yaml --fabric ethernet --deployment-type sriov \\
        --save-deployment-files ./deployment --deploy --kubeconfig ~/.kube/config

    # Explain profile selection
    l8k profiles resolve --config cluster-config.yaml --fabric infiniband --deployment-type hostdevice
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer

from launch_kit import console
from launch_kit.commands import launch_cmd, profiles_cmd, version_cmd
from launch_kit.config import WorkflowOptions, resolve_settings, validate_options
from launch_kit.constants import LOG_LEVELS
from launch_kit.errors import ConfigurationError

app = typer.Typer(
    help="Discover, select and deploy network fabric profiles on Kubernetes.",
    invoke_without_command=True,
)

app.add_typer(profiles_cmd.app, name="profiles")
app.command("version")(version_cmd.version)


def configure_logging(level: str) -> None:
    """Initialize logging for the workflow and all subcommands.

    Raises:
        ConfigurationError: If *level* is not a known log level.
    """
    if level.upper() not in LOG_LEVELS:
        raise ConfigurationError(f"unknown log level {level!r}; expected one of {', '.join(LOG_LEVELS)}")
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    # Phase 1: discovery
    user_config: Path | None = typer.Option(
        None, "--user-config", help="Use a provided config file instead of discovery"),
    discover_cluster_config: bool = typer.Option(
        False, "--discover-cluster-config", help="Deploy a thin probe to discover cluster capabilities"),
    save_cluster_config: Path = typer.Option(
        Path("/opt/nvidia/k8s-launch-kit/cluster-config.yaml"), "--save-cluster-config",
        help="Where to save the discovered cluster config"),
    # Phase 2: profile selection and generation
    fabric: str = typer.Option("", "--fabric", help="Fabric type (ethernet, infiniband)"),
    deployment_type: str = typer.Option(
        "", "--deployment-type", help="Deployment type (sriov, hostdevice, rdma_shared)"),
    multirail: bool = typer.Option(False, "--multirail", help="Deploy with multirail"),
    spectrum_x: bool = typer.Option(False, "--spectrum-x", help="Deploy for Spectrum-X"),
    ai: bool = typer.Option(False, "--ai", help="Deploy for AI workloads"),
    prompt: Path | None = typer.Option(
        None, "--prompt", help="File with a prompt for LLM-assisted profile selection"),
    llm_vendor: str | None = typer.Option(None, "--llm-vendor", help="LLM vendor (openai-azure)"),
    llm_api_url: str | None = typer.Option(None, "--llm-api-url", help="LLM API URL"),
    llm_api_key: str | None = typer.Option(None, "--llm-api-key", help="LLM API key"),
    save_deployment_files: Path | None = typer.Option(
        None, "--save-deployment-files", help="Directory to save generated deployment files"),
    enabled_plugins: str = typer.Option(
        "network-operator", "--enabled-plugins", help="Comma-separated list of plugins"),
    # Phase 3: deployment
    deploy: bool = typer.Option(False, "--deploy", help="Deploy the generated files to the cluster"),
    kubeconfig: Path | None = typer.Option(None, "--kubeconfig", help="Path to kubeconfig"),
    log_level: str = typer.Option("info", "--log-level", envvar="L8K_LOG_LEVEL", help="Log level"),
) -> None:
    """Run the launch workflow, or a subcommand."""
    configure_logging(log_level)
    if ctx.invoked_subcommand is not None:
        return

    options = WorkflowOptions(
        user_config=user_config,
        discover_cluster_config=discover_cluster_config,
        save_cluster_config=save_cluster_config,
        fabric=fabric,
        deployment_type=deployment_type,
        multirail=multirail,
        spectrum_x=spectrum_x,
        ai=ai,
        prompt=prompt,
        save_deployment_files=save_deployment_files,
        deploy=deploy,
        kubeconfig=kubeconfig,
        enabled_plugins=tuple(p.strip() for p in enabled_plugins.split(",") if p.strip()),
    )
    settings = resolve_settings(
        kubeconfig=kubeconfig,
        llm_vendor=llm_vendor,
        llm_api_url=llm_api_url,
        llm_api_key=llm_api_key,
        log_level=log_level,
    )
    try:
        validate_options(options)
    except ConfigurationError as e:
        raise typer.BadParameter(str(e)) from e
    launch_cmd.launch(options, settings)


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
