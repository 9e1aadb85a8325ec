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

"""Error taxonomy shared by every fixture layer."""

from __future__ import annotations

from typing import Any


class FixtureError(Exception):
    """Base class for all fixture errors."""


class TemplateError(FixtureError):
    """A template could not be rendered or a manifest could not be decoded."""


class ApplyError(FixtureError):
    """The cluster rejected a create request.

    Attributes:
        objects: Objects constructed before the failure, when raised from a
            bulk create.
        cause: The rejection that stopped a bulk create, or None.
    """

    def __init__(self, message: str, objects: list | None = None, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.objects = list(objects or [])
        self.cause = cause


class AlreadyExistsError(ApplyError):
    """The object being created already exists."""


class NotFoundError(FixtureError):
    """The addressed object (or its resource type) does not exist."""


class ClientError(FixtureError):
    """Any other failure talking to a cluster."""


class MalformedObjectError(ClientError):
    """An object's status payload does not have the expected shape."""


class WaitTimeoutError(FixtureError, TimeoutError):
    """A condition was not satisfied before its deadline.

    Attributes:
        target: Printable identity of the object that was polled.
        predicate: The predicate that never became true.
        observed: The last observed value, or None if never observed.
    """

    def __init__(self, target: str, predicate: Any, timeout: float, observed: Any = None) -> None:
        super().__init__(
            f"{target}: timed out after {timeout:g}s waiting for {predicate} (last observed: {observed})"
        )
        self.target = target
        self.predicate = predicate
        self.observed = observed


class ResolutionError(FixtureError, LookupError):
    """No provisioned cluster matches the requested name prefix."""


class ClusterProviderError(FixtureError):
    """The cluster lifecycle provider failed."""


class StageError(FixtureError):
    """A setup stage failed and aborted the remaining setup.

    Attributes:
        stage: Name of the failed stage.
        cause: The error raised by the stage.
    """

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"setup stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause
