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

"""Bounded, cancellable polling on top of tenacity."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from tenacity import RetryError, Retrying, retry_if_result, stop_before_delay, stop_when_event_set, wait_fixed

from launch_kit import logger
from launch_kit.constants import STATE_ERROR, STATE_READY
from launch_kit.errors import (
    ClusterError,
    NotFoundError,
    ReadinessTimeoutError,
    ReportedErrorState,
    WaitCancelledError,
)

if TYPE_CHECKING:
    from launch_kit.cluster import ClusterClient, ResourceKind

T = TypeVar("T")


def _remaining(timeout: float, deadline: float | None) -> float:
    if deadline is None:
        return timeout
    return max(0.0, min(timeout, deadline - time.monotonic()))


def poll_until(
    check: Callable[[], T | None],
    *,
    interval: float,
    timeout: float,
    description: str,
    cancel: threading.Event | None = None,
    deadline: float | None = None,
    timeout_error: type[ReadinessTimeoutError] = ReadinessTimeoutError,
) -> T:
    """Call *check* every *interval* seconds until it returns a result.

    ``None`` or ``False`` from *check* means "not yet". A ``ClusterError`` or
    ``NotFoundError`` raised by *check* is treated the same way; any other
    exception aborts the wait and propagates. The wait gives up instead of
    sleeping past *timeout* or *deadline*.

    Args:
        check: Condition to evaluate.
        interval: Seconds between evaluations.
        timeout: Upper bound on the total wait, in seconds.
        description: What is being waited for, used in errors and logs.
        cancel: Event that ends the wait immediately when set.
        deadline: Caller deadline as a ``time.monotonic()`` timestamp; the
            earlier of this and *timeout* wins.
        timeout_error: Error class raised when the wait runs out of time.

    Returns:
        The first non-empty result of *check*.

    Raises:
        WaitCancelledError: If *cancel* was set.
        ReadinessTimeoutError: If the time ran out (or *timeout_error*).
    """
    cancel = cancel or threading.Event()
    if cancel.is_set():
        raise WaitCancelledError(f"cancelled while waiting for {description}")

    def _attempt() -> T | None:
        try:
            return check()
        except (ClusterError, NotFoundError) as e:
            logger.debug("Polling %s: %s", description, e)
            return None

    budget = _remaining(timeout, deadline)
    retrying = Retrying(
        stop=stop_before_delay(budget) | stop_when_event_set(cancel),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda result: not result),
        sleep=cancel.wait,
    )
    try:
        return retrying(_attempt)
    except RetryError:
        if cancel.is_set():
            raise WaitCancelledError(f"cancelled while waiting for {description}") from None
        raise timeout_error(f"timed out after {budget:.0f}s waiting for {description}") from None


def wait_for_resource_state(
    client: ClusterClient,
    kind: ResourceKind,
    name: str,
    namespace: str | None = None,
    *,
    interval: float,
    timeout: float,
    cancel: threading.Event | None = None,
    deadline: float | None = None,
) -> dict:
    """Poll a resource's ``status.state`` until it is ready or in error.

    Read failures are retried until the deadline.

    Returns:
        The resource as last read, in the ready state.

    Raises:
        ReportedErrorState: If the resource reports the error state.
        ReadinessTimeoutError: If it is not ready in time.
    """

    def _state() -> dict | None:
        obj = client.get(kind, name, namespace)
        status = obj.get("status") or {}
        state = status.get("state", "")
        if state == STATE_READY:
            return obj
        if state == STATE_ERROR:
            raise ReportedErrorState(f"{kind.kind} {name}", status.get("reason", ""))
        logger.debug("%s %s state=%r, waiting", kind.kind, name, state)
        return None

    obj = poll_until(
        _state,
        interval=interval,
        timeout=timeout,
        description=f"{kind.kind} {name} to become ready",
        cancel=cancel,
        deadline=deadline,
    )
    logger.info("%s %s is ready", kind.kind, name)
    return obj
