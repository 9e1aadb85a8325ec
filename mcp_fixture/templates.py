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

"""Manifest template rendering and manifest decoding."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Mapping
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import jinja2
import yaml
from pydantic import BaseModel

from mcp_fixture.errors import TemplateError
from mcp_fixture.objects import ManagedObject

# {{.Field}} and {{ .Field.Sub }} placeholders
_FIELD_PLACEHOLDER = re.compile(r"\{\{\s*\.([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)\s*\}\}")

_ENV = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def _to_jinja(template: str) -> str:
    return _FIELD_PLACEHOLDER.sub(lambda m: "{{ " + m.group(1) + " }}", template)


def _context(data: Any) -> dict[str, Any]:
    """Flatten the supported data shapes into a template context."""
    if data is None:
        return {}
    if isinstance(data, BaseModel):
        return data.model_dump()
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.asdict(data)
    if isinstance(data, Mapping):
        return dict(data)
    if hasattr(data, "__dict__"):
        return dict(vars(data))
    raise TemplateError(f"unsupported template data of type {type(data).__name__}")


def render(template: str, data: Any) -> str:
    """Render a ``{{.Field}}`` template against *data*.

    Args:
        template: Template text.
        data: Mapping, dataclass, pydantic model or plain object.

    Returns:
        The rendered manifest.

    Raises:
        TemplateError: On malformed syntax or a missing field.
    """
    context = _context(data)
    try:
        return _ENV.from_string(_to_jinja(template)).render(**context)
    except jinja2.TemplateError as err:
        raise TemplateError(f"failed to render template: {err}") from err


def render_file(path: str | Path | Traversable, data: Any) -> str:
    """Read a template file and render it against *data*.

    Raises:
        TemplateError: If the file cannot be read or rendering fails.
    """
    try:
        text = path.read_text() if not isinstance(path, str) else Path(path).read_text()
    except OSError as err:
        raise TemplateError(f"failed to read template {path}: {err}") from err
    return render(text, data)


def package_file(name: str) -> Traversable:
    """Return a file bundled under ``mcp_fixture/data``."""
    return resources.files("mcp_fixture").joinpath("data", name)


def decode_manifest(manifest: str) -> list[ManagedObject]:
    """Decode every non-empty YAML document of a manifest.

    Raises:
        TemplateError: If the YAML is malformed or a document is not an object.
    """
    try:
        documents = list(yaml.safe_load_all(manifest))
    except yaml.YAMLError as err:
        raise TemplateError(f"failed to decode manifest: {err}") from err
    return [ManagedObject.from_dict(doc) for doc in documents if doc is not None]


def decode_one(manifest: str) -> ManagedObject:
    """Decode a manifest that must contain exactly one object."""
    objects = decode_manifest(manifest)
    if len(objects) != 1:
        raise TemplateError(f"expected exactly one object in manifest, found {len(objects)}")
    return objects[0]


def decode_dir(directory: str | Path) -> list[ManagedObject]:
    """Decode every file in *directory* (non-recursive, sorted by name).

    Raises:
        TemplateError: If the directory or one of its files cannot be read.
    """
    root = Path(directory)
    try:
        files = sorted(p for p in root.iterdir() if p.is_file())
    except OSError as err:
        raise TemplateError(f"failed to read manifest directory {root}: {err}") from err

    objects: list[ManagedObject] = []
    for path in files:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise TemplateError(f"failed to read manifest {path}: {err}") from err
        objects.extend(decode_manifest(text))
    return objects
