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

"""The end-to-end launch workflow: discover, select profiles, generate, deploy."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from rich.panel import Panel

from launch_kit import console, logger
from launch_kit.capabilities import CapabilityModel
from launch_kit.cluster import ClusterClient
from launch_kit.config import (
    LaunchKitConfig,
    RuntimeSettings,
    WorkflowOptions,
    load_config,
    load_default_config,
    save_config,
    validate_config,
)
from launch_kit.errors import ConfigurationError, LaunchKitError, WorkflowError
from launch_kit.intent import DeploymentIntent, IntentInference, infer_intent
from launch_kit.manifests import write_manifest_files
from launch_kit.plugins.base import Plugin
from launch_kit.profiles import ResolvedProfile, resolve_profile

PHASE_DISCOVERY = "discovery"
PHASE_PROFILE_SELECTION = "profile-selection"
PHASE_GENERATION = "generation"
PHASE_DEPLOYMENT = "deployment"


class Launcher:
    """Runs the launch workflow for one invocation.

    Args:
        options: Resolved command-line options.
        settings: Runtime settings.
        plugins: Enabled plugins, resolved once by the caller.
        client: Cluster client, or None when no kubeconfig was given.
        inference: Intent inference backend, or None when no prompt is used.
    """

    def __init__(
        self,
        options: WorkflowOptions,
        settings: RuntimeSettings,
        plugins: Sequence[Plugin],
        client: ClusterClient | None = None,
        inference: IntentInference | None = None,
    ) -> None:
        self.options = options
        self.settings = settings
        self.plugins = list(plugins)
        self.client = client
        self.inference = inference
        self.resolved: dict[str, ResolvedProfile] = {}

    def _require_client(self) -> ClusterClient:
        if self.client is None:
            raise ConfigurationError("a cluster client is required; pass --kubeconfig")
        return self.client

    # -- discovery --

    def discover(self) -> Path:
        """Discover capabilities with every plugin and write the capability file.

        Returns:
            The path of the capability file written.
        """
        console.print(Panel.fit("Discovering cluster configuration", style="bold blue"))
        client = self._require_client()
        defaults = load_default_config()

        capabilities = CapabilityModel()
        for plugin in self.plugins:
            logger.info("Running discovery for plugin %s", plugin.name)
            capabilities = capabilities.merge(plugin.discover(client, defaults))

        discovered = defaults.model_copy(update={"profile": None, "cluster_config": capabilities})
        path = save_config(discovered, self.options.save_cluster_config)
        console.print(f"[green]\u2705 Discovered cluster config saved to {path}[/green]")
        return path

    # -- profile selection --

    def profiles_configured_in_cmd(self) -> bool:
        return all(plugin.profile_configured(self.options) for plugin in self.plugins)

    def build_intent(self, config: LaunchKitConfig) -> DeploymentIntent:
        """Build the intent from flags, or from a confident inference over the prompt.

        Every field comes from one source. With several plugins the last one wins.
        """
        intent: DeploymentIntent | None = None
        if self.profiles_configured_in_cmd():
            for plugin in self.plugins:
                intent = plugin.intent_from_options(self.options)
        elif self.options.prompt:
            if self.inference is None:
                raise ConfigurationError("--prompt requires an LLM backend (--llm-vendor, --llm-api-url, --llm-api-key)")
            console.print("[yellow]\u2139\ufe0f  Selecting a profile using LLM-assisted prompt...[/yellow]")
            addenda = [plugin.system_prompt_addendum() for plugin in self.plugins]
            result = infer_intent(self.inference, self.options.prompt, config.capabilities, addenda)
            for plugin in self.plugins:
                intent = plugin.intent_from_inference(result.fields)
            logger.info("Selected options %s (reasoning: %s)", intent, result.reasoning)
        if intent is None:
            raise ConfigurationError("no profile configured in the command line and no prompt provided")
        return intent

    def select_profiles(self, config: LaunchKitConfig) -> dict[str, ResolvedProfile]:
        console.print(Panel.fit("Selecting deployment profiles", style="bold blue"))
        resolved = {}
        for plugin in self.plugins:
            profile = resolve_profile(config.profile, config.capabilities, plugin.name, self.settings.profiles_dir)
            console.print(f"[green]\u2705 Plugin {plugin.name}: profile {profile.name}[/green]")
            resolved[plugin.name] = profile
        return resolved

    # -- generation --

    def generate(self, config: LaunchKitConfig) -> None:
        console.print(Panel.fit("Generating deployment files", style="bold blue"))
        validate_config(config, config.profile.deployment)
        for plugin in self.plugins:
            profile = self.resolved[plugin.name]
            files = plugin.generate_deployment_files(profile, config)
            if profile.deployment_guide_path is not None and profile.deployment_guide_path.is_file():
                files[profile.deployment_guide_path.name] = profile.deployment_guide_path.read_text()
            if not self.options.save_deployment_files:
                logger.info("Rendered %d files for %s; not saving (no --save-deployment-files)", len(files), plugin.name)
                continue
            out_dir = Path(self.options.save_deployment_files) / plugin.name
            write_manifest_files(files, out_dir)
            console.print(f"[green]\u2705 Saved {len(files)} deployment files to {out_dir}[/green]")

    # -- deployment --

    def deploy(self) -> None:
        console.print(Panel.fit("Deploying to cluster", style="bold blue"))
        client = self._require_client()
        if not self.options.save_deployment_files:
            raise ConfigurationError("--deploy requires generated files directory; provide --save-deployment-files")
        for plugin in self.plugins:
            profile = self.resolved[plugin.name]
            plugin.deploy(profile, client, Path(self.options.save_deployment_files) / plugin.name)
            console.print(f"[green]\u2705 Profile {profile.name} applied[/green]")

    # -- workflow --

    def _phase(self, phase: str, fn, *args):
        try:
            return fn(*args)
        except LaunchKitError as e:
            raise WorkflowError(phase, e) from e

    def run(self) -> LaunchKitConfig | None:
        """Execute the workflow.

        Returns:
            The config the deployment files were generated from, or None if
            the run stopped after discovery.

        Raises:
            WorkflowError: Naming the failed phase and the error that stopped it.
        """
        logger.info("Starting l8k workflow")

        if self.options.discover_cluster_config:
            config_path = self._phase(PHASE_DISCOVERY, self.discover)
        else:
            config_path = self.options.user_config

        if not self.profiles_configured_in_cmd() and not self.options.prompt:
            console.print("[yellow]\u2139\ufe0f  Profiles are not configured for every plugin, "
                          "skipping deployment files generation[/yellow]")
            return None

        config = self._phase(PHASE_PROFILE_SELECTION, load_config, config_path)
        if config.profile is None:
            intent = self._phase(PHASE_PROFILE_SELECTION, self.build_intent, config)
            config = config.model_copy(update={"profile": intent})
        self.resolved = self._phase(PHASE_PROFILE_SELECTION, self.select_profiles, config)

        self._phase(PHASE_GENERATION, self.generate, config)

        if self.options.deploy:
            self._phase(PHASE_DEPLOYMENT, self.deploy)

        console.print("[green]\u2705 l8k workflow completed successfully[/green]")
        return config
