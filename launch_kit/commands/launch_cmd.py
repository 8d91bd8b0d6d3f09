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

"""Run the full launch workflow for one invocation."""

from __future__ import annotations

from launch_kit import logger
from launch_kit.cluster import KubectlClient
from launch_kit.config import RuntimeSettings, WorkflowOptions, display_options, validate_options
from launch_kit.intent import OpenAIIntentInference
from launch_kit.plugins import build_plugins
from launch_kit.workflow import Launcher


def build_launcher(options: WorkflowOptions, settings: RuntimeSettings) -> Launcher:
    """Resolve plugins, the cluster client and the inference backend once.

    Raises:
        ConfigurationError: On invalid flags, unknown plugins, or an
            unusable LLM backend.
    """
    validate_options(options)
    plugins = build_plugins(options.enabled_plugins, settings)

    client = KubectlClient(settings.kubeconfig) if settings.kubeconfig else None
    inference = None
    if options.prompt and not all(p.profile_configured(options) for p in plugins):
        inference = OpenAIIntentInference(
            vendor=settings.llm_vendor,
            api_url=settings.llm_api_url,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
        )
    return Launcher(options, settings, plugins, client=client, inference=inference)


def launch(options: WorkflowOptions, settings: RuntimeSettings) -> None:
    """Validate, show the resolved configuration, and run the workflow."""
    launcher = build_launcher(options, settings)
    display_options(options, settings)
    logger.debug("Enabled plugins: %s", ", ".join(p.name for p in launcher.plugins))
    launcher.run()
