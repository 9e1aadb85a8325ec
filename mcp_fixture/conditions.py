# /*
# Copyright 2026 The OpenMCP Testing Authors.
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

"""Condition predicates and the polling evaluator.

A predicate is one of a closed set of frozen dataclasses. ``evaluate``
dispatches on the predicate type and turns a freshly fetched object body
into an ``Observation``; ``wait_for`` polls until the observation is
satisfied or the deadline passes.

An object that does not exist yet never fails a wait. It is simply not
satisfied (or, for ``Deleted``, satisfied). Any other error while fetching
aborts the wait.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from functools import singledispatch
from typing import Any, Union

from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from mcp_fixture import logger
from mcp_fixture.client import ClusterConfig
from mcp_fixture.constants import (
    CONDITION_AVAILABLE,
    CONDITION_TRUE,
    DEFAULT_WAIT_INTERVAL_SECONDS,
    DEFAULT_WAIT_TIMEOUT_SECONDS,
)
from mcp_fixture.errors import MalformedObjectError, NotFoundError, WaitTimeoutError
from mcp_fixture.objects import ManagedObject


@dataclass(frozen=True)
class WaitOptions:
    """Deadline and poll interval for a wait, in seconds."""

    timeout: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    interval: float = DEFAULT_WAIT_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        if self.timeout <= 0 or self.interval <= 0:
            raise ValueError(f"wait timeout and interval must be positive: {self}")


# ============================================================================
# Predicates
# ============================================================================

@dataclass(frozen=True)
class NamedCondition:
    """Entry of ``status.conditions`` with the given type has the given status."""

    type: str
    status: str = CONDITION_TRUE

    def __str__(self) -> str:
        return f"condition {self.type}={self.status}"


@dataclass(frozen=True)
class StatusKey:
    """Scalar at ``status.<key>`` equals the given value."""

    key: str
    value: Any

    def __str__(self) -> str:
        return f"status.{self.key}={self.value!r}"


@dataclass(frozen=True)
class DeploymentAvailable:
    """Deployment reports the ``Available`` condition as ``True``."""

    def __str__(self) -> str:
        return "deployment available"


@dataclass(frozen=True)
class Exists:
    """Object is observably present."""

    def __str__(self) -> str:
        return "object present"


@dataclass(frozen=True)
class Deleted:
    """Object is observably absent."""

    def __str__(self) -> str:
        return "object deleted"


Predicate = Union[NamedCondition, StatusKey, DeploymentAvailable, Exists, Deleted]


@dataclass(frozen=True)
class Observation:
    satisfied: bool
    observed: Any = None


# ============================================================================
# Evaluation
# ============================================================================

def _status_of(body: dict[str, Any]) -> dict[str, Any] | None:
    status = body.get("status")
    if status is None:
        return None
    if not isinstance(status, dict):
        raise MalformedObjectError(f"status is a {type(status).__name__}, expected a mapping")
    return status


def _match_condition(body: dict[str, Any], cond_type: str, cond_status: str) -> Observation:
    status = _status_of(body)
    conditions = None if status is None else status.get("conditions")
    if conditions is None:
        return Observation(False, "no conditions")
    if not isinstance(conditions, list):
        raise MalformedObjectError(f"status.conditions is a {type(conditions).__name__}, expected a list")

    found: dict[str, Any] | None = None
    for entry in conditions:
        if not isinstance(entry, dict):
            raise MalformedObjectError(f"condition entry is a {type(entry).__name__}, expected a mapping")
        # last entry wins on duplicate types
        if entry.get("type") == cond_type:
            found = entry
    if found is None:
        return Observation(False, f"no {cond_type} condition")
    current = found.get("status")
    observed = f"{cond_type}={current}"
    if found.get("message"):
        observed += f" ({found['message']})"
    return Observation(isinstance(current, str) and current == cond_status, observed)


@singledispatch
def evaluate(predicate: Any, body: dict[str, Any]) -> Observation:
    """Evaluate *predicate* against a freshly fetched object body.

    Raises:
        MalformedObjectError: If the status payload has an unexpected shape.
        TypeError: For an unknown predicate type.
    """
    raise TypeError(f"unsupported predicate: {predicate!r}")


@evaluate.register
def _(predicate: NamedCondition, body: dict[str, Any]) -> Observation:
    return _match_condition(body, predicate.type, predicate.status)


@evaluate.register
def _(predicate: DeploymentAvailable, body: dict[str, Any]) -> Observation:
    return _match_condition(body, CONDITION_AVAILABLE, CONDITION_TRUE)


@evaluate.register
def _(predicate: StatusKey, body: dict[str, Any]) -> Observation:
    status = _status_of(body)
    if status is None:
        return Observation(False, "no status")
    if predicate.key not in status:
        return Observation(False, f"no status.{predicate.key}")
    current = status[predicate.key]
    return Observation(current == predicate.value, current)


@evaluate.register
def _(predicate: Exists, body: dict[str, Any]) -> Observation:
    return Observation(True, "present")


@evaluate.register
def _(predicate: Deleted, body: dict[str, Any]) -> Observation:
    return Observation(False, "present")


def observe(obj: ManagedObject, cluster: ClusterConfig, predicate: Predicate) -> Observation:
    """Fetch *obj* once and evaluate *predicate* against it.

    A missing object is reported as an observation, never as an error.
    """
    try:
        body = cluster.client.get(obj)
    except NotFoundError:
        return Observation(isinstance(predicate, Deleted), "not found")
    obj.refresh(body)
    return evaluate(predicate, body)


# ============================================================================
# Waiting
# ============================================================================

def wait_for(
    obj: ManagedObject,
    cluster: ClusterConfig,
    predicate: Predicate,
    options: WaitOptions | None = None,
) -> ManagedObject:
    """Poll *obj* until *predicate* holds.

    Args:
        obj: Object to poll; its body is refreshed on every successful fetch.
        cluster: Cluster the object lives on.
        predicate: Condition to wait for.
        options: Deadline and interval, defaults to ``WaitOptions()``.

    Returns:
        The refreshed object.

    Raises:
        WaitTimeoutError: If the deadline elapses first.
        ClientError: If fetching fails for any reason other than not found.
    """
    options = options or WaitOptions()
    last = Observation(False)

    @retry(
        stop=stop_after_delay(options.timeout),
        wait=wait_fixed(options.interval),
        retry=retry_if_result(lambda ok: not ok),
        reraise=True,
    )
    def _poll() -> bool:
        nonlocal last
        last = observe(obj, cluster, predicate)
        logger.info("%s: waiting for %s, observed: %s", obj, predicate, last.observed)
        return last.satisfied

    try:
        _poll()
    except RetryError as err:
        raise WaitTimeoutError(str(obj), predicate, options.timeout, last.observed) from err
    return obj


def wait_for_all(
    objects: list[ManagedObject],
    cluster: ClusterConfig,
    predicate: Predicate,
    options: WaitOptions | None = None,
) -> list[ManagedObject]:
    """Wait for *predicate* on every object in turn, sharing one deadline."""
    options = options or WaitOptions()
    deadline = time.monotonic() + options.timeout
    for obj in objects:
        remaining = max(deadline - time.monotonic(), 1e-3)
        wait_for(obj, cluster, predicate, WaitOptions(timeout=remaining, interval=options.interval))
    return objects
