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

"""Apply rendered manifests to a cluster and delete objects idempotently."""

from __future__ import annotations

import os
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

from mcp_fixture import logger
from mcp_fixture.client import ClusterConfig
from mcp_fixture.conditions import Deleted, Exists, WaitOptions, wait_for, wait_for_all
from mcp_fixture.errors import AlreadyExistsError, ApplyError, NotFoundError
from mcp_fixture.objects import ManagedObject
from mcp_fixture.templates import decode_dir, decode_manifest, decode_one, render, render_file


def _create(cluster: ClusterConfig, obj: ManagedObject) -> ManagedObject:
    logger.info("creating %s", obj)
    try:
        obj.refresh(cluster.client.create(obj))
    except AlreadyExistsError:
        logger.info("%s already exists", obj)
    return obj


def _create_each(cluster: ClusterConfig, objects: list[ManagedObject]) -> list[ManagedObject]:
    """Create objects one at a time, ignoring already-existing ones.

    Raises:
        ApplyError: On the first rejected create. ``objects`` on the error
            holds every object constructed so far; nothing is rolled back.
    """
    constructed: list[ManagedObject] = []
    for obj in objects:
        obj = obj.with_namespace(cluster.namespace)
        constructed.append(obj)
        try:
            _create(cluster, obj)
        except ApplyError as err:
            raise ApplyError(str(err), objects=constructed, cause=err) from err
    return constructed


def create_from_template(cluster: ClusterConfig, template: str, data: Any) -> ManagedObject:
    """Render *template*, decode exactly one object and create it.

    Raises:
        TemplateError: If rendering or decoding fails.
        ApplyError: If the cluster rejects the object for any reason other
            than it already existing.
    """
    obj = decode_one(render(template, data)).with_namespace(cluster.namespace)
    return _create(cluster, obj)


def create_from_template_file(
    cluster: ClusterConfig, path: str | Path | Traversable, data: Any
) -> list[ManagedObject]:
    """Render a (multi-document) template file and create every object in it."""
    return create_all_from_manifest(cluster, render_file(path, data))


def create_all_from_manifest(cluster: ClusterConfig, manifest: str) -> list[ManagedObject]:
    """Create every object of a multi-document manifest."""
    return _create_each(cluster, decode_manifest(manifest))


def create_all_from_dir(cluster: ClusterConfig, directory: str | Path) -> list[ManagedObject]:
    """Create every object found in the files of *directory* (non-recursive)."""
    return _create_each(cluster, decode_dir(directory))


def _is_dir_source(source: str | Path) -> bool:
    if isinstance(source, Path) or os.path.isdir(source):
        return True
    # a single line with no mapping key cannot be a manifest
    text = source.strip()
    return bool(text) and "\n" not in text and ":" not in text


def create_all_and_wait(
    cluster: ClusterConfig,
    source: str | Path,
    options: WaitOptions | None = None,
) -> list[ManagedObject]:
    """Create all objects from a directory or manifest text, then wait for them.

    Args:
        cluster: Target cluster.
        source: A directory path, or manifest text. A single-line string
            without a ``:`` is taken as a directory path.
        options: When given, block until every object is observably present.

    Returns:
        The created objects.
    """
    if _is_dir_source(source):
        objects = create_all_from_dir(cluster, source)
    else:
        objects = create_all_from_manifest(cluster, source)
    if options is not None:
        wait_for_all(objects, cluster, Exists(), options)
    return objects


def delete_object(
    cluster: ClusterConfig,
    obj: ManagedObject,
    options: WaitOptions | None = None,
) -> None:
    """Delete *obj* if it exists.

    Not found on fetch or on delete counts as already deleted. With
    *options*, block until the object is observably absent.
    """
    try:
        obj.refresh(cluster.client.get(obj))
        cluster.client.delete(obj)
    except NotFoundError:
        logger.info("%s already absent", obj)
        return
    logger.info("deleted %s", obj)
    if options is not None:
        wait_for(obj, cluster, Deleted(), options)
