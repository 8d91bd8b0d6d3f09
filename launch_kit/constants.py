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

"""Constants, packaged paths, and the deployment defaults loader."""

from __future__ import annotations

from pathlib import Path

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULTS_FILE = PACKAGE_DIR / "defaults.yaml"
PROFILES_DIR = PACKAGE_DIR / "profiles"
SYSTEM_PROMPT_FILE = PACKAGE_DIR / "prompts" / "system-prompt"
PROFILE_FILE_NAME = "profile.yaml"


def load_defaults() -> dict:
    """Load the deployment defaults echoed into every capability file.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    with open(DEFAULTS_FILE) as f:
        return yaml.safe_load(f) or {}


# -- Polling and retry policy --
DEFAULT_POLL_INTERVAL_SECONDS = 3.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 300.0
DEFAULT_FOUNDATION_TIMEOUT_SECONDS = 900.0
DEFAULT_POD_APPLY_ATTEMPTS = 3
DEFAULT_POD_RETRY_DELAY_SECONDS = 30.0

# -- Cluster identities --
FIELD_MANAGER = "l8k"
FOUNDATION_KIND = "NicClusterPolicy"
RETRYABLE_KINDS = ("Pod",)
PROBE_NAME = "nic-cluster-policy"
AGENT_WORKLOAD_NAME = "nic-configuration-daemon"
DEFAULT_TRAFFIC_CLASS = "east-west"
DEFAULT_INFINIBAND_PREFIX = "ib"

# -- Status values reported by the foundation controller --
STATE_READY = "ready"
STATE_ERROR = "error"

# -- Intent inference --
LLM_VENDOR_AZURE = "openai-azure"
SUPPORTED_LLM_VENDORS = (LLM_VENDOR_AZURE,)
LLM_MODEL = "model-router"
LLM_API_VERSION = "2025-02-01-preview"
LLM_TEMPERATURE = 0.5
CONFIDENCE_LOW = "low"

# -- Deployment types that carry extra config requirements --
DEPLOYMENT_HOSTDEVICE = "hostdevice"
DEPLOYMENT_SRIOV = "sriov"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
