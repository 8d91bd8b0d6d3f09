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

"""The interface every launch kit plugin implements."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from launch_kit.capabilities import CapabilityModel
    from launch_kit.cluster import ClusterClient
    from launch_kit.config import LaunchKitConfig, WorkflowOptions
    from launch_kit.deploy import DeploymentResult
    from launch_kit.intent import DeploymentIntent
    from launch_kit.profiles import ResolvedProfile


class Plugin(Protocol):
    """A resource family the launch kit can discover, generate and deploy.

    The name enables or disables the plugin on the command line and selects
    the catalog profiles it owns.
    """

    name: str
    version: str

    def profile_configured(self, options: WorkflowOptions) -> bool:
        """Return True if the command line fully states this plugin's intent."""
        ...

    def intent_from_options(self, options: WorkflowOptions) -> DeploymentIntent: ...

    def intent_from_inference(self, fields: dict[str, str]) -> DeploymentIntent: ...

    def system_prompt_addendum(self) -> str:
        """Plugin-specific context appended to the inference system prompt."""
        ...

    def discover(self, client: ClusterClient, config: LaunchKitConfig) -> CapabilityModel:
        """Discover the plugin's share of the cluster capabilities."""
        ...

    def generate_deployment_files(self, profile: ResolvedProfile, config: LaunchKitConfig) -> dict[str, str]:
        """Render the profile's templates, keyed by file name."""
        ...

    def deploy(self, profile: ResolvedProfile, client: ClusterClient, manifests_dir: Path) -> DeploymentResult:
        """Apply the files previously written to *manifests_dir*."""
        ...
