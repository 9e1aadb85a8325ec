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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent


def load_dependencies() -> dict:
    """Load default component images from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = PACKAGE_DIR / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


def dep_image(*keys: str) -> str:
    """Return ``image:version`` for a dependency entry, or an empty string."""
    image = dep_value(*keys, "image", default="")
    version = dep_value(*keys, "version", default="")
    if not image:
        return ""
    return f"{image}:{version}" if version else image


# -- Bundled files --
KIND_CONFIG_FILE = "kind-config.yaml"
OPERATOR_TEMPLATE_FILE = "operator.yaml.tmpl"

# -- Well-known cluster prefixes --
PLATFORM_CLUSTER_PREFIX = "platform"
ONBOARDING_CLUSTER_PREFIX = "onboarding"
MCP_CLUSTER_PREFIX = "mcp"
RANDOM_NAME_LENGTH = 16

# -- Namespaces --
NS_DEFAULT = "default"
DEFAULT_OPENMCP_NAMESPACE = "openmcp-system"

# -- Operator defaults --
DEFAULT_OPERATOR_NAME = "openmcp-operator"
DEFAULT_OPERATOR_ENVIRONMENT = "debug"
DEFAULT_PLATFORM_NAME = "platform"

# -- API identities --
API_OPENMCP = "openmcp.cloud/v1alpha1"
API_CLUSTERS = "clusters.openmcp.cloud/v1alpha1"
API_CORE_V2 = "core.openmcp.cloud/v2alpha1"
KIND_CLUSTER_PROVIDER = "ClusterProvider"
KIND_SERVICE_PROVIDER = "ServiceProvider"
KIND_CLUSTER = "Cluster"
KIND_MCP = "ManagedControlPlaneV2"
ONBOARDING_CLUSTER_OBJECT = "onboarding"

# -- Condition values --
CONDITION_READY = "Ready"
CONDITION_AVAILABLE = "Available"
CONDITION_TRUE = "True"
MCP_PHASE_KEY = "phase"
MCP_PHASE_READY = "Ready"

# -- Wait defaults --
DEFAULT_WAIT_TIMEOUT_SECONDS = 300.0
DEFAULT_WAIT_INTERVAL_SECONDS = 2.0

# -- Cluster lifecycle --
DEFAULT_CLUSTER_CREATE_MAX_RETRIES = 2
CLUSTER_CREATE_RETRY_WAIT_SECONDS = 10
CLUSTER_CREATE_WAIT = "120s"
