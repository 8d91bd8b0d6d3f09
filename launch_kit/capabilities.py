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

"""Capability model and the device-inventory aggregation that produces it.

The model is the ``clusterConfig`` section of the capability file. Physical
functions and worker nodes are deduplicated and sorted on construction, so two
models built from the same hardware serialize to the same bytes no matter what
order the inventory was listed in.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from launch_kit import logger
from launch_kit.constants import DEFAULT_INFINIBAND_PREFIX, DEFAULT_TRAFFIC_CLASS


# ============================================================================
# Model
# ============================================================================

class NodeCapabilities(BaseModel):
    """Networking features exposed by the cluster's worker nodes."""

    model_config = ConfigDict(frozen=True)

    sriov: bool = False
    rdma: bool = False
    ib: bool = False


class ClusterCapabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    nodes: NodeCapabilities = NodeCapabilities()


class PFDescriptor(BaseModel):
    """One physical function found on a worker node.

    Attributes:
        rdma_device: RDMA device name, e.g. ``mlx5_0``.
        pci_address: PCI address of the function.
        network_interface: Kernel network interface name.
        traffic: Traffic class assigned to the function.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rdma_device: str = Field(default="", alias="rdmaDevice")
    pci_address: str = Field(default="", alias="pciAddress")
    network_interface: str = Field(default="", alias="networkInterface")
    traffic: str = DEFAULT_TRAFFIC_CLASS

    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.pci_address, self.rdma_device, self.network_interface, self.traffic)


class CapabilityModel(BaseModel):
    """Discovered or declared networking capabilities of a cluster.

    Attributes:
        capabilities: Node-level feature flags.
        pfs: Physical functions, unique and sorted by PCI address.
        worker_nodes: Worker node names, unique and sorted.
        node_selector: Optional node selector echoed into rendered manifests.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    capabilities: ClusterCapabilities = ClusterCapabilities()
    pfs: tuple[PFDescriptor, ...] = ()
    worker_nodes: tuple[str, ...] = Field(default=(), alias="workerNodes")
    node_selector: dict[str, str] | None = Field(default=None, alias="nodeSelector")

    @field_validator("pfs")
    @classmethod
    def _sorted_unique_pfs(cls, value: tuple[PFDescriptor, ...]) -> tuple[PFDescriptor, ...]:
        return tuple(sorted(set(value), key=PFDescriptor.sort_key))

    @field_validator("worker_nodes")
    @classmethod
    def _sorted_unique_nodes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(sorted({node for node in value if node}))

    @property
    def sriov_capable(self) -> bool:
        return self.capabilities.nodes.sriov

    @property
    def rdma_capable(self) -> bool:
        return self.capabilities.nodes.rdma

    @property
    def infiniband_capable(self) -> bool:
        return self.capabilities.nodes.ib

    def capability_flags(self) -> dict[str, bool]:
        """Return the boolean capabilities keyed the way profiles name them."""
        nodes = self.capabilities.nodes
        return {"sriov": nodes.sriov, "rdma": nodes.rdma, "ib": nodes.ib}

    def to_dict(self) -> dict:
        """Serialize with camelCase keys in declared field order."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def merge(self, other: CapabilityModel) -> CapabilityModel:
        """Union of two models; a capability is set if either side has it."""
        mine, theirs = self.capabilities.nodes, other.capabilities.nodes
        nodes = NodeCapabilities(
            sriov=mine.sriov or theirs.sriov,
            rdma=mine.rdma or theirs.rdma,
            ib=mine.ib or theirs.ib,
        )
        return CapabilityModel(
            capabilities=ClusterCapabilities(nodes=nodes),
            pfs=self.pfs + other.pfs,
            worker_nodes=self.worker_nodes + other.worker_nodes,
            node_selector=self.node_selector if self.node_selector is not None else other.node_selector,
        )


# ============================================================================
# Aggregation
# ============================================================================

def aggregate_inventory(
    devices: Iterable[dict],
    *,
    traffic_class: str = DEFAULT_TRAFFIC_CLASS,
    infiniband_prefix: str = DEFAULT_INFINIBAND_PREFIX,
    node_selector: dict[str, str] | None = None,
) -> CapabilityModel:
    """Fold device-inventory objects into a CapabilityModel.

    A non-empty RDMA device marks the cluster RDMA capable, a non-empty PCI
    address marks it SR-IOV capable, and a non-empty interface name starting
    with *infiniband_prefix* marks it InfiniBand capable. Ports reporting none
    of the three are ignored.

    Args:
        devices: Inventory objects, each with ``status.node`` and ``status.ports``.
        traffic_class: Traffic class recorded on every physical function.
        infiniband_prefix: Interface name prefix that denotes an InfiniBand port.
        node_selector: Node selector carried through to the model.

    Returns:
        The aggregated, sorted CapabilityModel.
    """
    sriov = rdma = ib = False
    pfs: set[PFDescriptor] = set()
    nodes: set[str] = set()

    for device in devices:
        status = device.get("status") or {}
        for port in status.get("ports") or []:
            rdma_device = port.get("rdmaInterface") or ""
            pci_address = port.get("pci") or ""
            interface = port.get("networkInterface") or ""
            if not (rdma_device or pci_address or interface):
                continue

            rdma = rdma or bool(rdma_device)
            sriov = sriov or bool(pci_address)
            ib = ib or bool(interface and interface.startswith(infiniband_prefix))
            pfs.add(PFDescriptor(
                rdma_device=rdma_device,
                pci_address=pci_address,
                network_interface=interface,
                traffic=traffic_class,
            ))

        node = status.get("node") or ""
        if node:
            nodes.add(node)

    logger.debug("Aggregated %d physical functions across %d nodes", len(pfs), len(nodes))
    return CapabilityModel(
        capabilities=ClusterCapabilities(nodes=NodeCapabilities(sriov=sriov, rdma=rdma, ib=ib)),
        pfs=tuple(pfs),
        worker_nodes=tuple(nodes),
        node_selector=node_selector,
    )
