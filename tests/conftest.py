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

"""Shared in-memory fakes for the object client and the cluster provider."""

from __future__ import annotations

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mcp_fixture.client import ClusterConfig
from mcp_fixture.errors import AlreadyExistsError, ClusterProviderError, NotFoundError
from mcp_fixture.objects import ManagedObject

TESTDATA = Path(__file__).parent / "testdata"

CLUSTER_SCOPED_KINDS = {"namespace", "clusterrolebinding", "clusterprovider", "serviceprovider"}


class FakeObjectClient:
    """In-memory ObjectClient.

    Attributes:
        objects: Stored bodies keyed by (apiVersion, lowercase kind, namespace, name).
        calls: ``(verb, "<kind>/<name>")`` in call order.
        create_status: Status injected into newly created objects, by kind.
        create_errors: Errors raised by ``create``, by object name.
        get_errors: Errors raised by ``get``, by object name.
        get_hook: Called with the running get count before every lookup.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str, str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.create_status: dict[str, dict[str, Any]] = {}
        self.create_errors: dict[str, Exception] = {}
        self.get_errors: dict[str, Exception] = {}
        self.get_hook: Callable[[int], None] | None = None
        self.get_count = 0

    @staticmethod
    def key(obj: ManagedObject) -> tuple[str, str, str, str]:
        kind = obj.kind.lower()
        namespace = "" if kind in CLUSTER_SCOPED_KINDS else obj.namespace
        return (obj.api_version, kind, namespace, obj.name)

    def add(self, obj: ManagedObject, status: dict[str, Any] | None = None) -> None:
        body = obj.to_dict()
        if status is not None:
            body["status"] = status
        self.objects[self.key(obj)] = body

    def set_status(self, obj: ManagedObject, status: Any) -> None:
        self.objects[self.key(obj)]["status"] = status

    def has(self, obj: ManagedObject) -> bool:
        return self.key(obj) in self.objects

    def get(self, obj: ManagedObject) -> dict[str, Any]:
        self.calls.append(("get", f"{obj.kind}/{obj.name}"))
        self.get_count += 1
        if self.get_hook is not None:
            self.get_hook(self.get_count)
        if obj.name in self.get_errors:
            raise self.get_errors[obj.name]
        try:
            return copy.deepcopy(self.objects[self.key(obj)])
        except KeyError:
            raise NotFoundError(f"{obj} not found") from None

    def create(self, obj: ManagedObject) -> dict[str, Any]:
        self.calls.append(("create", f"{obj.kind}/{obj.name}"))
        if obj.name in self.create_errors:
            raise self.create_errors[obj.name]
        if self.has(obj):
            raise AlreadyExistsError(f"{obj} already exists")
        body = obj.to_dict()
        body["metadata"]["uid"] = f"uid-{len(self.objects)}"
        if obj.kind in self.create_status:
            body["status"] = copy.deepcopy(self.create_status[obj.kind])
        self.objects[self.key(obj)] = body
        return copy.deepcopy(body)

    def delete(self, obj: ManagedObject) -> None:
        self.calls.append(("delete", f"{obj.kind}/{obj.name}"))
        if self.objects.pop(self.key(obj), None) is None:
            raise NotFoundError(f"{obj} not found")


class FakeClusterProvider:
    """In-memory ClusterProvider recording every call."""

    def __init__(self, clusters: list[str] | None = None) -> None:
        self.clusters: list[str] = list(clusters or [])
        self.calls: list[tuple[str, ...]] = []
        self.fail: dict[str, Exception] = {}

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise self.fail[op]

    def create(self, name: str, config_path=None) -> None:
        self.calls.append(("create", name))
        self._maybe_fail("create")
        self.clusters.append(name)

    def list(self) -> list[str]:
        return list(self.clusters)

    def kubeconfig(self, name: str) -> str:
        if name not in self.clusters:
            raise ClusterProviderError(f"no cluster {name}")
        return f"kubeconfig-of-{name}"

    def destroy(self, name: str) -> None:
        self.calls.append(("destroy", name))
        self._maybe_fail("destroy")
        if name in self.clusters:
            self.clusters.remove(name)

    def load_image(self, name: str, image: str) -> None:
        self.calls.append(("load_image", name, image))
        self._maybe_fail("load_image")


@pytest.fixture
def fake_client() -> FakeObjectClient:
    return FakeObjectClient()


@pytest.fixture
def cluster(fake_client: FakeObjectClient) -> ClusterConfig:
    return ClusterConfig(client=fake_client, namespace="default", cluster_name="onboarding-test")


@pytest.fixture
def fake_provider() -> FakeClusterProvider:
    return FakeClusterProvider()
