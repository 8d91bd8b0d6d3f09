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

"""NVIDIA Network Operator plugin."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path

from launch_kit import logger
from launch_kit.capabilities import CapabilityModel
from launch_kit.cluster import ClusterClient
from launch_kit.config import LaunchKitConfig, NetworkOperatorConfig, RuntimeSettings, WorkflowOptions
from launch_kit.constants import PACKAGE_DIR
from launch_kit.deploy import DeploymentOrchestrator, DeploymentResult
from launch_kit.discovery import DiscoveryEngine
from launch_kit.errors import ConfigurationError
from launch_kit.intent import DeploymentIntent, intent_from_flags, intent_from_inference
from launch_kit.manifests import manifests_from_rendered, read_manifest_dir
from launch_kit.profiles import ResolvedProfile
from launch_kit.renderer import render_templates

PLUGIN_NAME = "network-operator"
PLUGIN_VERSION = "1.0.0"
PROMPT_ADDENDUM_FILE = PACKAGE_DIR / "prompts" / "network-operator-system-prompt-addendum"

OPERATOR_IMAGE = "nic-configuration-operator"
DAEMON_IMAGE = "nic-configuration-operator-daemon"


def probe_spec(operator: NetworkOperatorConfig) -> dict:
    """Build the minimal NicClusterPolicy spec that starts NIC discovery.

    Only the NIC configuration operator and its per-node daemon are enabled.
    """
    def image(name: str) -> dict:
        return {"repository": operator.repository, "image": name, "version": operator.component_version}

    return {
        "nicConfigurationOperator": {
            "operator": image(OPERATOR_IMAGE),
            "configurationDaemon": image(DAEMON_IMAGE),
        },
    }


class NetworkOperatorPlugin:
    """Discovers NICs through the NIC configuration operator and deploys Network Operator profiles.

    Args:
        settings: Runtime settings shared by discovery and deployment.
        cancel: Event that aborts any in-progress wait.
        deadline: Optional ``time.monotonic()`` deadline for every wait.
        sleep: Sleep function used between apply retries.
    """

    name = PLUGIN_NAME
    version = PLUGIN_VERSION

    def __init__(
        self,
        settings: RuntimeSettings,
        cancel: threading.Event | None = None,
        deadline: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.cancel = cancel
        self.deadline = deadline
        self.sleep = sleep

    def profile_configured(self, options: WorkflowOptions) -> bool:
        return bool(options.fabric or options.deployment_type)

    def intent_from_options(self, options: WorkflowOptions) -> DeploymentIntent:
        intent = intent_from_flags(
            fabric=options.fabric,
            deployment_type=options.deployment_type,
            multirail=options.multirail,
            spectrum_x=options.spectrum_x,
            ai=options.ai,
        )
        logger.debug("Built intent for plugin %s from flags: %s", self.name, intent)
        return intent

    def intent_from_inference(self, fields: dict[str, str]) -> DeploymentIntent:
        intent = intent_from_inference(fields)
        logger.debug("Built intent for plugin %s from inference: %s", self.name, intent)
        return intent

    def system_prompt_addendum(self) -> str:
        try:
            return PROMPT_ADDENDUM_FILE.read_text()
        except OSError as e:
            raise ConfigurationError(f"failed to read prompt addendum {PROMPT_ADDENDUM_FILE}: {e}") from e

    def discover(self, client: ClusterClient, config: LaunchKitConfig) -> CapabilityModel:
        """Run a discovery probe and return the aggregated capabilities.

        Raises:
            ConfigurationError: If the config has no ``networkOperator`` section.
        """
        operator = config.network_operator
        if operator is None or not operator.namespace:
            raise ConfigurationError("networkOperator.namespace is required for discovery")

        node_selector = config.cluster_config.node_selector if config.cluster_config else None
        engine = DiscoveryEngine(client, self.settings, cancel=self.cancel, deadline=self.deadline)
        return engine.discover(probe_spec(operator), operator.namespace, node_selector)

    def generate_deployment_files(self, profile: ResolvedProfile, config: LaunchKitConfig) -> dict[str, str]:
        return render_templates(profile.template_paths, config.to_dict())

    def deploy(self, profile: ResolvedProfile, client: ClusterClient, manifests_dir: Path) -> DeploymentResult:
        logger.info("Deploying profile %s from %s", profile.name, manifests_dir)
        manifests = manifests_from_rendered(read_manifest_dir(manifests_dir))
        orchestrator = DeploymentOrchestrator(
            client, self.settings, cancel=self.cancel, deadline=self.deadline, sleep=self.sleep,
        )
        return orchestrator.deploy(manifests)
