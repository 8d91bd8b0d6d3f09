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

"""Cluster client interface and the kubectl-backed implementation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Protocol

import sh

from launch_kit import logger
from launch_kit.errors import ClusterError, ConfigurationError, ConflictError, NotFoundError


@dataclass(frozen=True)
class ResourceKind:
    """A cluster resource type.

    Attributes:
        api_version: ``group/version`` (or ``version`` for the core group).
        kind: The object kind.
        plural: Lower-case plural resource name.
        namespaced: Whether objects of this kind live in a namespace.
    """

    api_version: str
    kind: str
    plural: str
    namespaced: bool = True

    @property
    def resource(self) -> str:
        """Fully qualified resource name understood by kubectl."""
        group, _, _ = self.api_version.rpartition("/")
        return f"{self.plural}.{group}" if group else self.plural


NIC_CLUSTER_POLICY = ResourceKind("mellanox.com/v1alpha1", "NicClusterPolicy", "nicclusterpolicies", namespaced=False)
NIC_DEVICE = ResourceKind("configuration.net.nvidia.com/v1alpha1", "NicDevice", "nicdevices")
POD = ResourceKind("v1", "Pod", "pods")


class ClusterClient(Protocol):
    """Synchronous create/get/list/delete/apply against the cluster API."""

    def create(self, obj: dict) -> dict: ...

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict: ...

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict]: ...

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None: ...

    def apply(self, obj: dict, field_manager: str, force: bool = True) -> dict: ...


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        ConfigurationError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise ConfigurationError(f"Required command '{cmd}' not found. Please install it first.") from err


def _stderr(err: sh.ErrorReturnCode) -> str:
    stderr = err.stderr
    return stderr.decode(errors="replace") if isinstance(stderr, bytes) else str(stderr)


class KubectlClient:
    """ClusterClient that shells out to ``kubectl`` and speaks JSON."""

    def __init__(self, kubeconfig: str | None = None) -> None:
        require_command("kubectl")
        self._kubectl = sh.kubectl.bake("--kubeconfig", kubeconfig) if kubeconfig else sh.kubectl

    def _run(self, *args: str, stdin: str | None = None) -> str:
        logger.debug("kubectl %s", " ".join(args))
        try:
            return str(self._kubectl(*args, _in=stdin))
        except sh.ErrorReturnCode as err:
            message = _stderr(err).strip()
            if "(NotFound)" in message:
                raise NotFoundError(message) from err
            if "(AlreadyExists)" in message:
                raise ConflictError(message) from err
            raise ClusterError(f"kubectl {args[0]} failed: {message}") from err

    @staticmethod
    def _scope(kind: ResourceKind, namespace: str | None) -> list[str]:
        if not kind.namespaced:
            return []
        return ["-n", namespace] if namespace else ["--all-namespaces"]

    def create(self, obj: dict) -> dict:
        return json.loads(self._run("create", "-f", "-", "-o", "json", stdin=json.dumps(obj)))

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict:
        scope = ["-n", namespace] if kind.namespaced and namespace else []
        return json.loads(self._run("get", kind.resource, name, *scope, "-o", "json"))

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict]:
        output = self._run("get", kind.resource, *self._scope(kind, namespace), "-o", "json")
        return json.loads(output).get("items", [])

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        scope = ["-n", namespace] if kind.namespaced and namespace else []
        self._run("delete", kind.resource, name, *scope, "--wait=false")

    def apply(self, obj: dict, field_manager: str, force: bool = True) -> dict:
        args = ["apply", "--server-side", f"--field-manager={field_manager}", "-f", "-", "-o", "json"]
        if force:
            args.insert(2, "--force-conflicts")
        return json.loads(self._run(*args, stdin=json.dumps(obj)))
