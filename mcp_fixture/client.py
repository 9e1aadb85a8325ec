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

"""Structured-object client: get, create and delete by identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import yaml
from kubernetes import config as kube_config
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from mcp_fixture.errors import AlreadyExistsError, ApplyError, ClientError, NotFoundError
from mcp_fixture.objects import ManagedObject

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


class ObjectClient(Protocol):
    """The narrow client surface the fixture relies on."""

    def get(self, obj: ManagedObject) -> dict[str, Any]: ...

    def create(self, obj: ManagedObject) -> dict[str, Any]: ...

    def delete(self, obj: ManagedObject) -> None: ...


@dataclass(frozen=True)
class ClusterConfig:
    """A client bound to one cluster and one target namespace.

    Attributes:
        client: Structured-object client for the cluster.
        namespace: Namespace objects are rewritten to on apply.
        cluster_name: Name of the cluster as known to the lifecycle provider.
    """

    client: ObjectClient
    namespace: str
    cluster_name: str = ""

    def with_namespace(self, namespace: str) -> ClusterConfig:
        return ClusterConfig(self.client, namespace, self.cluster_name)


class KubeObjectClient:
    """ObjectClient backed by the Kubernetes dynamic client."""

    def __init__(self, dynamic_client: DynamicClient) -> None:
        self._dyn = dynamic_client

    @classmethod
    def from_kubeconfig(cls, kubeconfig: str) -> KubeObjectClient:
        """Build a client from raw kubeconfig YAML.

        Raises:
            ClientError: If the kubeconfig cannot be loaded.
        """
        try:
            api_client = kube_config.new_client_from_config_dict(yaml.safe_load(kubeconfig))
        except (yaml.YAMLError, kube_config.ConfigException) as err:
            raise ClientError(f"invalid kubeconfig: {err}") from err
        return cls(DynamicClient(api_client))

    def _resource(self, obj: ManagedObject):
        try:
            return self._dyn.resources.get(api_version=obj.api_version, kind=obj.kind)
        except ResourceNotFoundError:
            pass
        # references may carry a lowercase kind
        for candidate in self._dyn.resources.search(api_version=obj.api_version):
            if getattr(candidate, "kind", "").lower() == obj.kind.lower() and "/" not in candidate.name:
                return candidate
        raise ResourceNotFoundError(f"no resource type for {obj.api_version}/{obj.kind}")

    @staticmethod
    def _scope(api, obj: ManagedObject) -> dict[str, str]:
        if api.namespaced and obj.namespace:
            return {"namespace": obj.namespace}
        return {}

    def get(self, obj: ManagedObject) -> dict[str, Any]:
        try:
            api = self._resource(obj)
            return api.get(name=obj.name, **self._scope(api, obj)).to_dict()
        except ResourceNotFoundError as err:
            raise NotFoundError(f"{obj}: {err}") from err
        except ApiException as err:
            if err.status == HTTP_NOT_FOUND:
                raise NotFoundError(f"{obj} not found") from err
            raise ClientError(f"get {obj} failed: {err.reason}") from err

    def create(self, obj: ManagedObject) -> dict[str, Any]:
        try:
            api = self._resource(obj)
        except ResourceNotFoundError as err:
            raise ApplyError(f"create {obj} failed: {err}") from err
        body = obj.to_dict()
        if not api.namespaced:
            body["metadata"].pop("namespace", None)
        try:
            return api.create(body=body, **self._scope(api, obj)).to_dict()
        except ApiException as err:
            if err.status == HTTP_CONFLICT:
                raise AlreadyExistsError(f"{obj} already exists") from err
            raise ApplyError(f"create {obj} failed: {err.status} {err.reason}: {err.body}") from err

    def delete(self, obj: ManagedObject) -> None:
        try:
            api = self._resource(obj)
            api.delete(name=obj.name, **self._scope(api, obj))
        except ResourceNotFoundError as err:
            raise NotFoundError(f"{obj}: {err}") from err
        except ApiException as err:
            if err.status == HTTP_NOT_FOUND:
                raise NotFoundError(f"{obj} not found") from err
            raise ClientError(f"delete {obj} failed: {err.reason}") from err
