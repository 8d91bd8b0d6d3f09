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

"""Ordered deployment of rendered manifests.

The foundation manifest is applied first and must report ready before any
other manifest is applied. The rest follow in file-name then document order.
Only kinds listed in ``RuntimeSettings.retryable_kinds`` are retried.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from launch_kit import logger
from launch_kit.cluster import NIC_CLUSTER_POLICY, ClusterClient, ResourceKind
from launch_kit.config import RuntimeSettings
from launch_kit.errors import ApplyError, LaunchKitError, MultipleFoundationManifestsError, TransientApplyError
from launch_kit.manifests import Manifest
from launch_kit.polling import wait_for_resource_state


def resource_kind_for(manifest: Manifest) -> ResourceKind:
    if manifest.kind == NIC_CLUSTER_POLICY.kind:
        return NIC_CLUSTER_POLICY
    return ResourceKind(
        api_version=manifest.api_version,
        kind=manifest.kind,
        plural=f"{manifest.kind.lower()}s",
        namespaced=manifest.namespace is not None,
    )


@dataclass
class DeploymentResult:
    """What a deployment applied.

    Attributes:
        foundation: The foundation manifest, if the set had one.
        applied: Every manifest applied, in application order.
        attempts: Apply attempts per manifest, keyed by ``Manifest.describe()``.
    """

    foundation: Manifest | None = None
    applied: list[Manifest] = field(default_factory=list)
    attempts: dict[str, int] = field(default_factory=dict)


class DeploymentOrchestrator:
    """Applies a manifest set with foundation-first ordering.

    Args:
        client: Cluster client used for apply and readiness reads.
        settings: Field manager, foundation kind, retry and timeout policy.
        cancel: Event that aborts the foundation readiness wait.
        deadline: Optional ``time.monotonic()`` deadline for the readiness wait.
        sleep: Sleep function used between apply retries.
    """

    def __init__(
        self,
        client: ClusterClient,
        settings: RuntimeSettings,
        cancel: threading.Event | None = None,
        deadline: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.settings = settings
        self.cancel = cancel
        self.deadline = deadline
        self.sleep = sleep
        self._retryable = {k.lower() for k in settings.retryable_kinds}

    def partition(self, manifests: Sequence[Manifest]) -> tuple[Manifest | None, list[Manifest]]:
        """Split off the foundation manifest.

        Raises:
            MultipleFoundationManifestsError: If more than one manifest has the foundation kind.
        """
        foundations = [m for m in manifests if m.kind == self.settings.foundation_kind]
        if len(foundations) > 1:
            found = ", ".join(m.describe() for m in foundations)
            raise MultipleFoundationManifestsError(
                f"expected at most one {self.settings.foundation_kind}, found {len(foundations)}: {found}"
            )
        rest = sorted(
            (m for m in manifests if m.kind != self.settings.foundation_kind),
            key=lambda m: (m.source, m.index),
        )
        return (foundations[0] if foundations else None), rest

    def is_retryable(self, manifest: Manifest) -> bool:
        return manifest.kind.lower() in self._retryable

    def _apply_once(self, manifest: Manifest, result: DeploymentResult) -> None:
        key = manifest.describe()
        result.attempts[key] = result.attempts.get(key, 0) + 1
        try:
            self.client.apply(manifest.obj, self.settings.field_manager, force=True)
        except LaunchKitError as e:
            if self.is_retryable(manifest):
                logger.warning("Apply of %s failed (attempt %d): %s", key, result.attempts[key], e)
                raise TransientApplyError(f"failed to apply {key}: {e}") from e
            raise ApplyError(f"failed to apply {key}: {e}") from e

    def apply(self, manifest: Manifest, result: DeploymentResult) -> None:
        """Apply one manifest, retrying retryable kinds.

        Raises:
            ApplyError: If the apply fails, or keeps failing for a retryable kind.
        """
        if not self.is_retryable(manifest):
            self._apply_once(manifest, result)
        else:
            retrying = Retrying(
                stop=stop_after_attempt(self.settings.pod_apply_attempts),
                wait=wait_fixed(self.settings.pod_retry_delay),
                retry=retry_if_exception_type(TransientApplyError),
                sleep=self.sleep,
                reraise=True,
            )
            try:
                retrying(self._apply_once, manifest, result)
            except TransientApplyError as e:
                raise ApplyError(
                    f"{manifest.describe()} still failing after {self.settings.pod_apply_attempts} attempts: {e}"
                ) from e
        result.applied.append(manifest)
        logger.info("Applied %s", manifest.describe())

    def deploy(self, manifests: Sequence[Manifest]) -> DeploymentResult:
        """Apply the foundation, wait for it, then apply the rest in order.

        Args:
            manifests: The decoded manifest set.

        Returns:
            What was applied and how many attempts each took.

        Raises:
            MultipleFoundationManifestsError: Before any mutation, if the set
                has more than one foundation.
            ReportedErrorState: If the foundation reports the error state.
            ReadinessTimeoutError: If the foundation is not ready in time.
            ApplyError: On the first manifest that could not be applied.
        """
        foundation, rest = self.partition(manifests)
        result = DeploymentResult(foundation=foundation)

        if foundation is not None:
            logger.info("Applying %s first", foundation.describe())
            self.apply(foundation, result)
            wait_for_resource_state(
                self.client,
                resource_kind_for(foundation),
                foundation.name,
                foundation.namespace,
                interval=self.settings.poll_interval,
                timeout=self.settings.foundation_timeout,
                cancel=self.cancel,
                deadline=self.deadline,
            )

        for manifest in rest:
            self.apply(manifest, result)

        logger.info("Deployed %d manifests", len(result.applied))
        return result
