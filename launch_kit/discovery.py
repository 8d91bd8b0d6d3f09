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

"""Cluster discovery: provision a probe, wait for the agents, collect the inventory.

The engine walks a fixed sequence of states::

    IDLE -> PROBE_CREATED -> WAITING_AGENTS_READY -> WAITING_INVENTORY -> AGGREGATED -> CLEANED_UP

Any failure after the probe is created moves it to FAILED, and the probe is
deleted before :meth:`DiscoveryEngine.discover` returns or raises.
"""

from __future__ import annotations

import enum
import threading

from launch_kit import logger
from launch_kit.capabilities import CapabilityModel, aggregate_inventory
from launch_kit.cluster import NIC_CLUSTER_POLICY, NIC_DEVICE, POD, ClusterClient
from launch_kit.config import RuntimeSettings
from launch_kit.errors import (
    AgentNotReadyError,
    ConflictError,
    DiscoveryTimeoutError,
    LaunchKitError,
    NoAgentsError,
    NotFoundError,
)
from launch_kit.polling import poll_until, wait_for_resource_state


class DiscoveryState(enum.Enum):
    IDLE = "Idle"
    PROBE_CREATED = "ProbeCreated"
    WAITING_AGENTS_READY = "WaitingAgentsReady"
    WAITING_INVENTORY = "WaitingInventory"
    AGGREGATED = "Aggregated"
    FAILED = "Failed"
    CLEANED_UP = "CleanedUp"


def is_pod_ready(pod: dict) -> bool:
    conditions = (pod.get("status") or {}).get("conditions") or []
    return any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions)


def owned_by(pod: dict, owner_kind: str, owner_name: str) -> bool:
    owners = (pod.get("metadata") or {}).get("ownerReferences") or []
    return any(o.get("kind") == owner_kind and o.get("name") == owner_name for o in owners)


class DiscoveryEngine:
    """Turns an unknown cluster into a CapabilityModel using a temporary probe.

    Args:
        client: Cluster client used for every read and write.
        settings: Poll interval, timeouts, probe and agent names.
        cancel: Event that aborts any in-progress wait when set.
        deadline: Optional ``time.monotonic()`` deadline applied to every wait.
    """

    def __init__(
        self,
        client: ClusterClient,
        settings: RuntimeSettings,
        cancel: threading.Event | None = None,
        deadline: float | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.cancel = cancel
        self.deadline = deadline
        self.state = DiscoveryState.IDLE
        self.history: list[DiscoveryState] = [DiscoveryState.IDLE]
        self._owns_probe = False

    def _transition(self, state: DiscoveryState) -> None:
        logger.debug("Discovery state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def probe_object(self, spec: dict) -> dict:
        return {
            "apiVersion": NIC_CLUSTER_POLICY.api_version,
            "kind": NIC_CLUSTER_POLICY.kind,
            "metadata": {"name": self.settings.probe_name},
            "spec": spec,
        }

    def ensure_probe(self, spec: dict) -> dict:
        """Create the probe and wait until it reports ready.

        Args:
            spec: The probe's ``spec`` section.

        Returns:
            The probe as last read, in the ready state.

        Raises:
            ConflictError: If any probe-kind object already exists.
            ReportedErrorState: If the probe reports the error state.
            ReadinessTimeoutError: If the probe is not ready in time.
        """
        existing = self.client.list(NIC_CLUSTER_POLICY)
        if existing:
            names = ", ".join(sorted((o.get("metadata") or {}).get("name", "?") for o in existing))
            raise ConflictError(
                f"{NIC_CLUSTER_POLICY.kind} already exists ({names}); wait for the running "
                "discovery to finish or delete it manually"
            )

        logger.info("Deploying a thin %s for cluster config discovery", NIC_CLUSTER_POLICY.kind)
        self.client.create(self.probe_object(spec))
        self._owns_probe = True
        self._transition(DiscoveryState.PROBE_CREATED)

        return wait_for_resource_state(
            self.client,
            NIC_CLUSTER_POLICY,
            self.settings.probe_name,
            interval=self.settings.poll_interval,
            timeout=self.settings.probe_timeout,
            cancel=self.cancel,
            deadline=self.deadline,
        )

    def wait_agents_ready(self, namespace: str, workload: str | None = None) -> list[dict]:
        """Check once that every pod of the agent DaemonSet is Ready.

        Returns:
            The agent pods.

        Raises:
            NoAgentsError: If the DaemonSet owns no pods.
            AgentNotReadyError: Naming the first pod that is not Ready.
        """
        workload = workload or self.settings.agent_workload
        self._transition(DiscoveryState.WAITING_AGENTS_READY)

        pods = [p for p in self.client.list(POD, namespace) if owned_by(p, "DaemonSet", workload)]
        if not pods:
            raise NoAgentsError(f"no pods found for DaemonSet {workload!r} in namespace {namespace!r}")
        for pod in pods:
            if not is_pod_ready(pod):
                raise AgentNotReadyError(pod["metadata"]["name"], workload)

        logger.info("All %d %s pods are Ready", len(pods), workload)
        return pods

    def wait_inventory_discovered(self, namespace: str) -> list[dict]:
        """Poll until at least one device inventory object exists.

        Returns:
            The inventory objects found.

        Raises:
            DiscoveryTimeoutError: If none appear in time.
        """
        self._transition(DiscoveryState.WAITING_INVENTORY)
        devices = poll_until(
            lambda: self.client.list(NIC_DEVICE, namespace),
            interval=self.settings.poll_interval,
            timeout=self.settings.probe_timeout,
            description=f"{NIC_DEVICE.kind} resources in namespace {namespace!r}",
            cancel=self.cancel,
            deadline=self.deadline,
            timeout_error=DiscoveryTimeoutError,
        )
        logger.info("%s resources discovered: %d", NIC_DEVICE.kind, len(devices))
        return devices

    def aggregate(self, devices: list[dict], node_selector: dict[str, str] | None = None) -> CapabilityModel:
        model = aggregate_inventory(
            devices,
            traffic_class=self.settings.traffic_class,
            infiniband_prefix=self.settings.infiniband_prefix,
            node_selector=node_selector,
        )
        self._transition(DiscoveryState.AGGREGATED)
        return model

    def cleanup(self) -> bool:
        """Delete the probe, logging instead of raising on failure.

        Returns:
            True if the probe is gone, False if deleting it failed.
        """
        try:
            self.client.delete(NIC_CLUSTER_POLICY, self.settings.probe_name)
            logger.info("%s deleted after discovery", NIC_CLUSTER_POLICY.kind)
        except NotFoundError:
            logger.debug("%s %s already gone", NIC_CLUSTER_POLICY.kind, self.settings.probe_name)
        except LaunchKitError as e:
            logger.error("failed to delete %s after discovery: %s", NIC_CLUSTER_POLICY.kind, e)
            return False
        finally:
            self._owns_probe = False
            self._transition(DiscoveryState.CLEANED_UP)
        return True

    def discover(
        self,
        probe_spec: dict,
        namespace: str,
        node_selector: dict[str, str] | None = None,
    ) -> CapabilityModel:
        """Run the whole discovery sequence.

        The probe is deleted afterwards whether or not discovery succeeded,
        as long as this engine created it.

        Args:
            probe_spec: The probe's ``spec`` section.
            namespace: Namespace of the agents and inventory objects.
            node_selector: Node selector carried into the model.

        Returns:
            The aggregated CapabilityModel.
        """
        try:
            self.ensure_probe(probe_spec)
            self.wait_agents_ready(namespace)
            devices = self.wait_inventory_discovered(namespace)
            return self.aggregate(devices, node_selector)
        except BaseException:
            self._transition(DiscoveryState.FAILED)
            raise
        finally:
            if self._owns_probe:
                self.cleanup()
