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

"""Error taxonomy for discovery, profile selection and deployment.

Each phase raises a specific subclass so callers can tell a reported error
state from a timeout, or a retryable apply failure from a fatal one.
"""

from __future__ import annotations


class LaunchKitError(Exception):
    """Base class for all launch kit errors."""


class ConfigurationError(LaunchKitError):
    """Missing or invalid configuration, never retried."""


class ConflictError(LaunchKitError):
    """A competing resource is already present on the cluster."""


class NotFoundError(LaunchKitError):
    """The requested cluster object does not exist."""


class ClusterError(LaunchKitError):
    """Any other failure reported by the cluster client."""


class ReadinessTimeoutError(LaunchKitError):
    """A polled wait exceeded its deadline."""


class WaitCancelledError(ReadinessTimeoutError):
    """A polled wait was cancelled by the caller."""


class DiscoveryTimeoutError(ReadinessTimeoutError):
    """No device inventory appeared before the deadline."""


class ReportedErrorState(LaunchKitError):
    """The watched resource itself reported an error status.

    Attributes:
        name: Name of the resource that reported the error.
        reason: The reason string published by the resource.
    """

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"{name} in error state: {reason}")
        self.name = name
        self.reason = reason


class NoAgentsError(LaunchKitError):
    """No pods are owned by the per-node agent workload."""


class AgentNotReadyError(LaunchKitError):
    """A per-node agent pod is not Ready.

    Attributes:
        pod: Name of the first pod found not Ready.
    """

    def __init__(self, pod: str, workload: str) -> None:
        super().__init__(f"pod {pod!r} from DaemonSet {workload!r} is not Ready")
        self.pod = pod
        self.workload = workload


class NoApplicableProfileError(LaunchKitError):
    """No catalog profile matched the intent and capabilities.

    Attributes:
        reasons: One human-readable rejection reason per evaluated candidate.
    """

    def __init__(self, plugin: str, reasons: list[str]) -> None:
        detail = "; ".join(reasons) if reasons else "no profiles available"
        super().__init__(f"no applicable profile found for plugin {plugin!r}: {detail}")
        self.plugin = plugin
        self.reasons = list(reasons)


class MultipleFoundationManifestsError(LaunchKitError):
    """More than one foundation manifest was supplied for one deployment."""


class ApplyError(LaunchKitError):
    """Applying a manifest failed and will not be retried."""


class TransientApplyError(ApplyError):
    """Applying a manifest of a retryable kind failed."""


class IntentInferenceError(LaunchKitError):
    """The intent inference call failed or returned an unusable reply."""


class LowConfidenceError(IntentInferenceError):
    """The inferred intent was reported with low confidence.

    Attributes:
        reasoning: The model's explanation for its answer.
    """

    def __init__(self, reasoning: str) -> None:
        super().__init__(
            "couldn't select a deployment profile based on the user prompt. "
            "Try again with a different prompt or use the cli flags "
            "(--fabric, --deployment-type, --multirail) to select the profile manually. "
            f"Reason: {reasoning}"
        )
        self.reasoning = reasoning


class WorkflowError(LaunchKitError):
    """A workflow phase failed.

    Attributes:
        phase: Name of the failing phase.
        cause: The innermost error that stopped the phase.
    """

    def __init__(self, phase: str, cause: BaseException) -> None:
        super().__init__(f"{phase} failed: {cause}")
        self.phase = phase
        self.cause = cause
