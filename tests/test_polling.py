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

import threading
import time

import pytest

from fakes import FakeClusterClient
from launch_kit.cluster import NIC_CLUSTER_POLICY
from launch_kit.errors import (
    ClusterError,
    DiscoveryTimeoutError,
    ReadinessTimeoutError,
    ReportedErrorState,
    WaitCancelledError,
)
from launch_kit.polling import poll_until, wait_for_resource_state


def make_counter(succeed_on: int):
    calls = []

    def check():
        calls.append(1)
        return "done" if len(calls) >= succeed_on else None

    return check, calls


def test_poll_returns_first_result():
    check, calls = make_counter(succeed_on=3)
    assert poll_until(check, interval=0, timeout=5, description="counter") == "done"
    assert len(calls) == 3


def test_poll_times_out():
    with pytest.raises(ReadinessTimeoutError):
        poll_until(lambda: None, interval=0, timeout=0.01, description="never")


def test_poll_uses_requested_timeout_error():
    with pytest.raises(DiscoveryTimeoutError):
        poll_until(lambda: [], interval=0, timeout=0.01, description="never", timeout_error=DiscoveryTimeoutError)


def test_poll_respects_tighter_deadline():
    started = time.monotonic()
    with pytest.raises(ReadinessTimeoutError):
        poll_until(lambda: None, interval=0, timeout=60, description="never", deadline=started + 0.01)
    assert time.monotonic() - started < 5


def test_poll_never_sleeps_past_timeout():
    check, calls = make_counter(succeed_on=100)
    started = time.monotonic()
    with pytest.raises(ReadinessTimeoutError):
        poll_until(check, interval=0.2, timeout=0.5, description="slow")
    assert time.monotonic() - started < 0.5
    assert len(calls) == 3


def test_poll_interval_longer_than_deadline_checks_once():
    check, calls = make_counter(succeed_on=100)
    started = time.monotonic()
    with pytest.raises(ReadinessTimeoutError):
        poll_until(check, interval=30, timeout=60, description="slow", deadline=started + 0.1)
    assert time.monotonic() - started < 5
    assert len(calls) == 1


def test_poll_already_cancelled_does_not_call_check():
    cancel = threading.Event()
    cancel.set()
    check, calls = make_counter(succeed_on=1)
    with pytest.raises(WaitCancelledError):
        poll_until(check, interval=0, timeout=5, description="cancelled", cancel=cancel)
    assert calls == []


def test_cancel_wakes_a_sleeping_poll():
    cancel = threading.Event()
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(WaitCancelledError):
            poll_until(lambda: None, interval=30, timeout=60, description="long", cancel=cancel)
    finally:
        timer.cancel()
    assert time.monotonic() - started < 5


def test_cluster_errors_are_polled_through():
    attempts = []

    def check():
        attempts.append(1)
        if len(attempts) < 3:
            raise ClusterError("connection refused")
        return True

    assert poll_until(check, interval=0, timeout=5, description="flaky") is True
    assert len(attempts) == 3


def test_other_errors_abort_immediately():
    attempts = []

    def check():
        attempts.append(1)
        raise ReportedErrorState("thing", "broken")

    with pytest.raises(ReportedErrorState):
        poll_until(check, interval=0, timeout=5, description="thing")
    assert len(attempts) == 1


def test_resource_state_ready_after_progress():
    client = FakeClusterClient()
    client.add({"kind": "NicClusterPolicy", "metadata": {"name": "policy"}})
    client.policy_states = ["notReady", "", "ready"]
    obj = wait_for_resource_state(client, NIC_CLUSTER_POLICY, "policy", interval=0, timeout=5)
    assert obj["status"]["state"] == "ready"
    assert len(client.ops("get")) == 3


def test_resource_state_error_carries_reason():
    client = FakeClusterClient()
    client.add({"kind": "NicClusterPolicy", "metadata": {"name": "policy"}})
    client.policy_states = ["notReady", "error"]
    client.policy_reason = "image pull failed"
    with pytest.raises(ReportedErrorState) as exc:
        wait_for_resource_state(client, NIC_CLUSTER_POLICY, "policy", interval=0, timeout=5)
    assert exc.value.reason == "image pull failed"


def test_resource_missing_until_deadline_times_out():
    client = FakeClusterClient()
    with pytest.raises(ReadinessTimeoutError):
        wait_for_resource_state(client, NIC_CLUSTER_POLICY, "policy", interval=0, timeout=0.01)
