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

"""Minimal structured representation of a remote declarative resource."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from mcp_fixture.errors import TemplateError


@dataclass
class ManagedObject:
    """Identity plus a snapshot of the object body.

    The body is a local copy of remote state; ``refresh`` replaces it with
    whatever the server returned on the latest read.

    Attributes:
        api_version: ``group/version`` (or bare ``version`` for the core group).
        kind: Resource kind.
        name: Object name.
        namespace: Object namespace, empty for cluster-scoped objects.
        body: Full object body as decoded from a manifest or the server.
    """

    api_version: str
    kind: str
    name: str
    namespace: str = ""
    body: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> ManagedObject:
        """Build an object from a decoded manifest document.

        Raises:
            TemplateError: If the document lacks apiVersion, kind or metadata.name.
        """
        if not isinstance(body, dict):
            raise TemplateError(f"manifest is not a valid object: expected a mapping, got {type(body).__name__}")
        metadata = body.get("metadata") or {}
        api_version = body.get("apiVersion")
        kind = body.get("kind")
        name = metadata.get("name") if isinstance(metadata, dict) else None
        if not api_version or not kind or not name:
            raise TemplateError(
                f"manifest is not a valid object: apiVersion={api_version!r} kind={kind!r} name={name!r}"
            )
        return cls(
            api_version=str(api_version),
            kind=str(kind),
            name=str(name),
            namespace=str(metadata.get("namespace") or ""),
            body=copy.deepcopy(body),
        )

    @classmethod
    def ref(cls, api_version: str, kind: str, name: str, namespace: str = "") -> ManagedObject:
        """Return an empty object with only its identifying properties set."""
        return cls(api_version=api_version, kind=kind, name=name, namespace=namespace)

    @property
    def group(self) -> str:
        return self.api_version.rpartition("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @property
    def status(self) -> dict[str, Any]:
        status = self.body.get("status")
        return status if isinstance(status, dict) else {}

    def with_namespace(self, namespace: str) -> ManagedObject:
        """Return a copy addressed to *namespace*, overriding any embedded one."""
        body = copy.deepcopy(self.body)
        body.setdefault("metadata", {})["namespace"] = namespace
        return ManagedObject(self.api_version, self.kind, self.name, namespace, body)

    def refresh(self, body: dict[str, Any]) -> ManagedObject:
        """Replace the local snapshot with a freshly read body."""
        self.body = copy.deepcopy(body)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the body with identity fields written back."""
        body = copy.deepcopy(self.body)
        body["apiVersion"] = self.api_version
        body["kind"] = self.kind
        metadata = body.setdefault("metadata", {})
        metadata["name"] = self.name
        if self.namespace:
            metadata["namespace"] = self.namespace
        else:
            metadata.pop("namespace", None)
        return body

    def __str__(self) -> str:
        return f"Object ({self.api_version}, Kind={self.kind}) {self.namespace}/{self.name}"
