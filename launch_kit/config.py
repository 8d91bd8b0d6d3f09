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

"""Runtime settings, the launch kit config file, and per-run workflow options."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from launch_kit import console, logger
from launch_kit.capabilities import CapabilityModel
from launch_kit.constants import (
    AGENT_WORKLOAD_NAME,
    DEFAULT_FOUNDATION_TIMEOUT_SECONDS,
    DEFAULT_INFINIBAND_PREFIX,
    DEFAULT_POD_APPLY_ATTEMPTS,
    DEFAULT_POD_RETRY_DELAY_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_TRAFFIC_CLASS,
    DEPLOYMENT_HOSTDEVICE,
    DEPLOYMENT_SRIOV,
    FIELD_MANAGER,
    FOUNDATION_KIND,
    LLM_MODEL,
    LLM_VENDOR_AZURE,
    PROBE_NAME,
    PROFILES_DIR,
    RETRYABLE_KINDS,
    load_defaults,
)
from launch_kit.errors import ConfigurationError
from launch_kit.intent import DeploymentIntent


# ============================================================================
# Runtime settings
# ============================================================================

class RuntimeSettings(BaseSettings):
    """Timing, identity and derivation policy, auto-loaded from L8K_* env vars.

    Attributes:
        poll_interval: Seconds between readiness polls.
        probe_timeout: Seconds to wait for the discovery probe and inventory.
        foundation_timeout: Seconds to wait for a deployed foundation resource.
        pod_apply_attempts: Total apply attempts for retryable kinds.
        pod_retry_delay: Seconds between apply attempts for retryable kinds.
        field_manager: Owner identity used for server-side apply.
        foundation_kind: Kind of the resource that must be ready first.
        retryable_kinds: Kinds whose apply failures are retried.
        profiles_dir: Root directory of the profile catalog.
        agent_workload: DaemonSet name of the per-node discovery agent.
        probe_name: Name of the discovery probe resource.
        traffic_class: Traffic class recorded on discovered PFs.
        infiniband_prefix: Interface name prefix of IPoIB ports, e.g. ``ibp1s0``; empty matches any interface.
        kubeconfig: Path to the kubeconfig file, or None for the default.
        llm_vendor: Intent inference vendor.
        llm_api_url: Intent inference endpoint.
        llm_api_key: Intent inference credential.
        llm_model: Intent inference model or deployment name.
        log_level: Root log level.
    """

    model_config = SettingsConfigDict(env_prefix="L8K_", extra="ignore")

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, ge=0)
    probe_timeout: float = Field(default=DEFAULT_PROBE_TIMEOUT_SECONDS, gt=0)
    foundation_timeout: float = Field(default=DEFAULT_FOUNDATION_TIMEOUT_SECONDS, gt=0)
    pod_apply_attempts: int = Field(default=DEFAULT_POD_APPLY_ATTEMPTS, ge=1, le=10)
    pod_retry_delay: float = Field(default=DEFAULT_POD_RETRY_DELAY_SECONDS, ge=0)
    field_manager: str = FIELD_MANAGER
    foundation_kind: str = FOUNDATION_KIND
    retryable_kinds: tuple[str, ...] = RETRYABLE_KINDS
    profiles_dir: Path = PROFILES_DIR
    agent_workload: str = AGENT_WORKLOAD_NAME
    probe_name: str = PROBE_NAME
    traffic_class: str = DEFAULT_TRAFFIC_CLASS
    infiniband_prefix: str = DEFAULT_INFINIBAND_PREFIX
    kubeconfig: str | None = None
    llm_vendor: str = LLM_VENDOR_AZURE
    llm_api_url: str = ""
    llm_api_key: str = ""
    llm_model: str = LLM_MODEL
    log_level: str = Field(default="INFO", pattern=r"^(?i:debug|info|warning|error|critical)$")


# ============================================================================
# Config file sections
# ============================================================================

class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NetworkOperatorConfig(_Section):
    version: str = ""
    component_version: str = Field(default="", alias="componentVersion")
    repository: str = ""
    namespace: str = ""


class NvIpamSubnet(_Section):
    subnet: str
    gateway: str = ""


class NvIpamConfig(_Section):
    pool_name: str = Field(default="", alias="poolName")
    subnets: list[NvIpamSubnet] = Field(default_factory=list)


class SriovConfig(_Section):
    mtu: int = 0
    num_vfs: int = Field(default=0, alias="numVfs")
    priority: int = 0
    resource_name: str = Field(default="", alias="resourceName")
    network_name: str = Field(default="", alias="networkName")


class HostdevConfig(_Section):
    resource_name: str = Field(default="", alias="resourceName")
    network_name: str = Field(default="", alias="networkName")


class RdmaSharedConfig(_Section):
    resource_name: str = Field(default="", alias="resourceName")
    hca_max: int = Field(default=0, alias="hcaMax")


class IpoibConfig(_Section):
    network_name: str = Field(default="", alias="networkName")


class MacvlanConfig(_Section):
    network_name: str = Field(default="", alias="networkName")


class LaunchKitConfig(_Section):
    """The launch kit config file (``l8k-config.yaml``).

    Every section is optional so that a capability file written by discovery
    and a hand-written user config share one schema.
    """

    network_operator: NetworkOperatorConfig | None = Field(default=None, alias="networkOperator")
    nv_ipam: NvIpamConfig | None = Field(default=None, alias="nvIpam")
    sriov: SriovConfig | None = None
    hostdev: HostdevConfig | None = None
    rdma_shared: RdmaSharedConfig | None = Field(default=None, alias="rdmaShared")
    ipoib: IpoibConfig | None = None
    macvlan: MacvlanConfig | None = None
    profile: DeploymentIntent | None = None
    cluster_config: CapabilityModel | None = Field(default=None, alias="clusterConfig")

    def to_dict(self) -> dict:
        """Serialize with camelCase keys in declared field order, omitting empty sections."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def capabilities(self) -> CapabilityModel:
        return self.cluster_config if self.cluster_config is not None else CapabilityModel()


def parse_config(data: dict | None, source: str) -> LaunchKitConfig:
    try:
        return LaunchKitConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(f"invalid config {source}: {e}") from e


def load_config(path: str | Path | None) -> LaunchKitConfig:
    """Load and validate a launch kit config file.

    Args:
        path: Path to the YAML file.

    Returns:
        The parsed config.

    Raises:
        ConfigurationError: If the path is missing, unreadable, not YAML, or
            does not match the schema.
    """
    if not path:
        raise ConfigurationError("no cluster configuration path provided")
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"cluster config file does not exist: {path}")

    logger.info("Loading cluster configuration from %s", path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"failed to read cluster config {path}: {e}") from e
    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"cluster config {path} must be a YAML mapping")
    return parse_config(data, str(path))


def dump_config(config: LaunchKitConfig) -> str:
    return yaml.safe_dump(config.to_dict(), sort_keys=False, default_flow_style=False)


def save_config(config: LaunchKitConfig, path: str | Path) -> Path:
    """Write a config file deterministically, creating parent directories.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_config(config))
    logger.info("Saved cluster configuration to %s", path)
    return path


def load_default_config() -> LaunchKitConfig:
    """Return the packaged deployment defaults as a config."""
    return parse_config(load_defaults(), "defaults.yaml")


def validate_config(config: LaunchKitConfig, deployment_type: str) -> None:
    """Check the fields a deployment of *deployment_type* cannot do without.

    Raises:
        ConfigurationError: On the first missing field.
    """
    operator = config.network_operator or NetworkOperatorConfig()
    if not operator.repository:
        raise ConfigurationError("networkOperator.repository is required")
    if not operator.component_version:
        raise ConfigurationError("networkOperator.componentVersion is required")
    if not operator.namespace:
        raise ConfigurationError("networkOperator.namespace is required")

    if deployment_type == DEPLOYMENT_HOSTDEVICE:
        hostdev = config.hostdev or HostdevConfig()
        if not hostdev.resource_name:
            raise ConfigurationError("hostdev.resourceName is required for hostdevice profiles")
        if not hostdev.network_name:
            raise ConfigurationError("hostdev.networkName is required for hostdevice profiles")

    if deployment_type == DEPLOYMENT_SRIOV:
        sriov = config.sriov or SriovConfig()
        if not sriov.resource_name:
            raise ConfigurationError("sriov.resourceName is required for SR-IOV profiles")
        if not sriov.network_name:
            raise ConfigurationError("sriov.networkName is required for SR-IOV profiles")


# ============================================================================
# Workflow options
# ============================================================================

@dataclass(frozen=True)
class WorkflowOptions:
    """Resolved command-line options for one run.

    Attributes:
        user_config: Path to a user-supplied config file, or None.
        discover_cluster_config: Whether to run cluster discovery.
        save_cluster_config: Where discovery writes the capability file.
        fabric: Intent fabric flag.
        deployment_type: Intent deployment type flag.
        multirail: Intent multirail flag.
        spectrum_x: Intent Spectrum-X flag.
        ai: Intent AI flag.
        prompt: Path to a free-text prompt for intent inference, or None.
        save_deployment_files: Directory for generated manifests, or None.
        deploy: Whether to apply the generated manifests.
        kubeconfig: Path to the kubeconfig, or None.
        enabled_plugins: Names of the plugins to run.
    """

    user_config: Path | None = None
    discover_cluster_config: bool = False
    save_cluster_config: Path = Path("/opt/nvidia/k8s-launch-kit/cluster-config.yaml")
    fabric: str = ""
    deployment_type: str = ""
    multirail: bool = False
    spectrum_x: bool = False
    ai: bool = False
    prompt: Path | None = None
    save_deployment_files: Path | None = None
    deploy: bool = False
    kubeconfig: Path | None = None
    enabled_plugins: tuple[str, ...] = field(default=("network-operator",))


def validate_options(options: WorkflowOptions) -> None:
    """Check flag combinations before anything touches the cluster.

    Raises:
        ConfigurationError: On the first invalid combination.
    """
    if options.user_config and options.discover_cluster_config:
        raise ConfigurationError("--user-config and --discover-cluster-config are mutually exclusive")
    if not options.user_config and not options.discover_cluster_config:
        raise ConfigurationError("either --user-config or --discover-cluster-config is required")
    if options.deploy and not options.kubeconfig:
        raise ConfigurationError("--deploy requires --kubeconfig")
    if options.discover_cluster_config and not options.kubeconfig:
        raise ConfigurationError("--discover-cluster-config requires --kubeconfig")
    if options.deploy and not options.save_deployment_files:
        raise ConfigurationError("--deploy requires --save-deployment-files")
    if not options.enabled_plugins:
        raise ConfigurationError("--enabled-plugins must name at least one plugin")


# ============================================================================
# Resolution and display
# ============================================================================

def resolve_settings(
    kubeconfig: Path | None = None,
    llm_vendor: str | None = None,
    llm_api_url: str | None = None,
    llm_api_key: str | None = None,
    log_level: str | None = None,
) -> RuntimeSettings:
    """Merge CLI overrides, environment variables, and defaults.

    Resolution priority: CLI arguments > L8K_* environment variables > defaults.

    Raises:
        ConfigurationError: If the environment holds invalid values.
    """
    try:
        settings = RuntimeSettings()
    except ValidationError as e:
        raise ConfigurationError(f"invalid L8K_* environment: {e}") from e

    overrides = {
        "kubeconfig": str(kubeconfig) if kubeconfig is not None else None,
        "llm_vendor": llm_vendor,
        "llm_api_url": llm_api_url,
        "llm_api_key": llm_api_key,
        "log_level": log_level.upper() if log_level else None,
    }
    return settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})


def display_options(options: WorkflowOptions, settings: RuntimeSettings) -> None:
    """Print the options relevant to the phases that will run."""
    console.print(Panel.fit("Configuration", style="bold blue"))

    if options.discover_cluster_config:
        console.print("[yellow]Discovery:[/yellow]")
        console.print(f"  save_cluster_config : {options.save_cluster_config}")
        console.print(f"  probe_timeout       : {settings.probe_timeout:.0f}s")
    else:
        console.print("[yellow]User config:[/yellow]")
        console.print(f"  user_config         : {options.user_config}")

    if options.fabric or options.deployment_type:
        console.print("[yellow]Intent:[/yellow]")
        console.print(f"  fabric              : {options.fabric or '(any)'}")
        console.print(f"  deployment_type     : {options.deployment_type or '(any)'}")
        console.print(f"  multirail           : {options.multirail}")
        console.print(f"  spectrum_x          : {options.spectrum_x}")
        console.print(f"  ai                  : {options.ai}")
    elif options.prompt:
        console.print("[yellow]Intent:[/yellow]")
        console.print(f"  prompt              : {options.prompt} (via {settings.llm_vendor})")

    console.print(f"  plugins             : {', '.join(options.enabled_plugins)}")
    console.print(f"  deployment_files    : {options.save_deployment_files or '(not saved)'}")
    if options.deploy:
        console.print("[yellow]Deployment:[/yellow]")
        console.print(f"  kubeconfig          : {options.kubeconfig}")
        console.print(f"  foundation_timeout  : {settings.foundation_timeout:.0f}s")
