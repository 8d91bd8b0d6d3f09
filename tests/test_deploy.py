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

import pytest

from fakes import FakeClusterClient, make_manifest_obj, make_settings
from launch_kit.deploy import DeploymentOrchestrator, resource_kind_for
from launch_kit.errors import (
    ApplyError,
    MultipleFoundationManifestsError,
    ReadinessTimeoutError,
    ReportedErrorState,
)
from launch_kit.manifests import Manifest


def manifest(source: str, kind: str, name: str, index: int = 0, namespace: str | None = None) -> Manifest:
    return Manifest(source=source, index=index, obj=make_manifest_obj(kind, name, namespace))


def policy(source: str = "10-nic-cluster-policy.yaml", name: str = "nic-cluster-policy") -> Manifest:
    obj = make_manifest_obj("NicClusterPolicy", name)
    obj["apiVersion"] = "mellanox.com/v1alpha1"
    return Manifest(source=source, index=0, obj=obj)


@pytest.fixture
def client():
    return FakeClusterClient()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def orchestrator(client, sleeps):
    return DeploymentOrchestrator(client, make_settings(pod_retry_delay=30), sleep=sleeps.append)


def test_foundation_applied_and_ready_before_anything_else(client, orchestrator):
    client.policy_states = ["notReady", "notReady", "ready"]
    manifests = [
        manifest("00-ipam.yaml", "IPPool", "pool", namespace="nvidia-network-operator"),
        policy(),
        manifest("20-network.yaml", "SriovNetwork", "net"),
    ]

    result = orchestrator.deploy(manifests)

    foundation_apply = next(c for c in client.ops("apply") if c.kind == "NicClusterPolicy")
    ready_read = client.ops("get")[-1]
    others = [c for c in client.ops("apply") if c.kind != "NicClusterPolicy"]

    assert foundation_apply.seq < ready_read.seq
    assert all(ready_read.seq < c.seq for c in others)
    assert [c.name for c in others] == ["pool", "net"]
    assert result.foundation.name == "nic-cluster-policy"
    assert [m.name for m in result.applied] == ["nic-cluster-policy", "pool", "net"]


def test_non_foundation_order_is_file_then_document(orchestrator):
    manifests = [
        manifest("b.yaml", "ConfigMap", "b0"),
        manifest("a.yaml", "ConfigMap", "a1", index=1),
        manifest("a.yaml", "ConfigMap", "a0", index=0),
    ]
    _, rest = orchestrator.partition(manifests)
    assert [m.name for m in rest] == ["a0", "a1", "b0"]


def test_no_foundation_applies_in_order(client, orchestrator):
    result = orchestrator.deploy([manifest("a.yaml", "ConfigMap", "one"), manifest("b.yaml", "ConfigMap", "two")])
    assert result.foundation is None
    assert [c.name for c in client.ops("apply")] == ["one", "two"]
    assert client.ops("get") == []


def test_multiple_foundations_rejected_before_any_mutation(client, orchestrator):
    manifests = [policy("10-a.yaml", "first"), policy("11-b.yaml", "second"), manifest("c.yaml", "ConfigMap", "c")]

    with pytest.raises(MultipleFoundationManifestsError, match="found 2"):
        orchestrator.deploy(manifests)

    assert client.mutations() == []


def test_pod_retried_until_success(client, orchestrator, sleeps):
    client.apply_failures["worker-test"] = 2
    result = orchestrator.deploy([manifest("30-pod.yaml", "Pod", "worker-test", namespace="default")])

    assert len(client.ops("apply")) == 3
    assert result.attempts["Pod/worker-test (30-pod.yaml#0)"] == 3
    assert sleeps == [30, 30]


def test_pod_retry_exhausted(client, orchestrator):
    client.apply_failures["worker-test"] = 5

    with pytest.raises(ApplyError, match="3 attempts"):
        orchestrator.deploy([manifest("30-pod.yaml", "Pod", "worker-test", namespace="default")])

    assert len(client.ops("apply")) == 3


def test_retryable_kind_matching_ignores_case(orchestrator):
    assert orchestrator.is_retryable(manifest("p.yaml", "pod", "p"))
    assert not orchestrator.is_retryable(manifest("d.yaml", "Deployment", "d"))


def test_non_retryable_failure_is_fatal_after_one_attempt(client, orchestrator, sleeps):
    client.apply_failures["net"] = 1
    manifests = [manifest("20-network.yaml", "SriovNetwork", "net"), manifest("30-after.yaml", "ConfigMap", "after")]

    with pytest.raises(ApplyError) as exc:
        orchestrator.deploy(manifests)

    assert type(exc.value) is ApplyError
    assert [c.name for c in client.ops("apply")] == ["net"]
    assert sleeps == []


def test_foundation_error_state_aborts_remaining(client, orchestrator):
    client.policy_states = ["notReady", "error"]
    client.policy_reason = "driver container failed"

    with pytest.raises(ReportedErrorState, match="driver container failed"):
        orchestrator.deploy([policy(), manifest("20-network.yaml", "SriovNetwork", "net")])

    assert [c.kind for c in client.ops("apply")] == ["NicClusterPolicy"]


def test_foundation_never_ready_times_out(client, orchestrator):
    client.policy_states = ["notReady"]

    with pytest.raises(ReadinessTimeoutError):
        orchestrator.deploy([policy(), manifest("20-network.yaml", "SriovNetwork", "net")])

    assert len(client.ops("apply")) == 1


def test_reapply_is_idempotent(client, orchestrator):
    manifests = [policy(), manifest("20-network.yaml", "SriovNetwork", "net")]
    orchestrator.deploy(manifests)
    snapshot = dict(client.objects)
    orchestrator.deploy(manifests)
    assert client.objects == snapshot


def test_resource_kind_for_manifest():
    kind = resource_kind_for(manifest("a.yaml", "IPPool", "pool", namespace="ns"))
    assert kind.kind == "IPPool"
    assert kind.plural == "ippools"
    assert kind.namespaced
    assert resource_kind_for(policy()).api_version == "mellanox.com/v1alpha1"
