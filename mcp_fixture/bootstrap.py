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

"""Staged setup and teardown of the openMCP test environment."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from importlib.resources import as_file
from typing import Any

from pydantic import BaseModel, Field
from rich.panel import Panel

from mcp_fixture import console, logger
from mcp_fixture.client import ClusterConfig, KubeObjectClient, ObjectClient
from mcp_fixture.clusters import ClusterProvider, KindProvider, random_name
from mcp_fixture.conditions import DeploymentAvailable, WaitOptions, wait_for
from mcp_fixture.config import (
    ClusterProviderSetup,
    FixtureSettings,
    OperatorSetup,
    ServiceProviderSetup,
    default_cluster_providers,
    default_service_providers,
)
from mcp_fixture.constants import (
    DEFAULT_OPENMCP_NAMESPACE,
    KIND_CONFIG_FILE,
    ONBOARDING_CLUSTER_OBJECT,
    OPERATOR_TEMPLATE_FILE,
    PLATFORM_CLUSTER_PREFIX,
    RANDOM_NAME_LENGTH,
)
from mcp_fixture.errors import AlreadyExistsError, FixtureError, StageError
from mcp_fixture.objects import ManagedObject
from mcp_fixture.providers import (
    cluster_ready,
    delete_cluster,
    delete_cluster_provider,
    delete_service_provider,
    install_cluster_provider,
    install_service_provider,
)
from mcp_fixture.resources import create_from_template_file
from mcp_fixture.templates import package_file

PLATFORM_CLUSTER_KEY = "platform_cluster"


# ============================================================================
# Stage engine
# ============================================================================

@dataclass
class StageContext:
    """State threaded through every stage of one run.

    Attributes:
        config: Config bound to the platform cluster, once it exists.
        values: Free-form values stages hand to later stages.
    """

    config: ClusterConfig | None = None
    values: dict[str, Any] = field(default_factory=dict)


StageFunc = Callable[[StageContext], None]


@dataclass(frozen=True)
class Stage:
    name: str
    fn: StageFunc


def compose(*fns: StageFunc) -> StageFunc:
    """Run several stage functions in a row, stopping at the first error."""
    def _composed(ctx: StageContext) -> None:
        for fn in fns:
            fn(ctx)
    return _composed


class Environment:
    """Ordered setup stages plus reverse-ordered finish stages.

    Stages are registered before the run starts and are immutable after.
    Setup stops at the first failing stage. Finish stages always all run,
    last registered first, and their errors are only logged.
    """

    def __init__(self, context: StageContext | None = None) -> None:
        self.context = context or StageContext()
        self._setup: list[Stage] = []
        self._finish: list[Stage] = []
        self._setup_done = False
        self._finish_done = False

    @property
    def setup_stages(self) -> list[str]:
        return [s.name for s in self._setup]

    @property
    def finish_stages(self) -> list[str]:
        return [s.name for s in self._finish]

    def _check_open(self) -> None:
        if self._setup_done or self._finish_done:
            raise RuntimeError("stages cannot be registered after the environment has started")

    def setup(self, name: str, fn: StageFunc) -> Environment:
        self._check_open()
        self._setup.append(Stage(name, fn))
        return self

    def finish(self, name: str, fn: StageFunc) -> Environment:
        self._check_open()
        self._finish.append(Stage(name, fn))
        return self

    def run_setup(self) -> StageContext:
        """Run setup stages in order.

        Raises:
            StageError: Wrapping the error of the first failing stage.
            RuntimeError: If setup already ran.
        """
        if self._setup_done:
            raise RuntimeError("setup already ran")
        self._setup_done = True
        for stage in self._setup:
            console.print(Panel.fit(stage.name, style="bold blue"))
            try:
                stage.fn(self.context)
            except Exception as err:
                logger.error("setup stage '%s' failed: %s", stage.name, err)
                raise StageError(stage.name, err) from err
        return self.context

    def run_finish(self) -> list[tuple[str, Exception]]:
        """Run every finish stage, last registered first.

        Returns:
            ``(stage name, error)`` for each stage that failed.
        """
        if self._finish_done:
            raise RuntimeError("finish already ran")
        self._finish_done = True
        failures: list[tuple[str, Exception]] = []
        for stage in reversed(self._finish):
            logger.info("finish stage: %s", stage.name)
            try:
                stage.fn(self.context)
            except Exception as err:
                logger.error("finish stage '%s' failed: %s", stage.name, err)
                failures.append((stage.name, err))
        return failures

    def run(self, body: StageFunc | None = None) -> StageContext:
        """Run setup, then *body* if setup succeeded, then always finish.

        Raises:
            StageError: If setup failed.
            Exception: Whatever *body* raised.
        """
        try:
            self.run_setup()
            if body is not None:
                body(self.context)
        finally:
            self.run_finish()
        return self.context


# ============================================================================
# openMCP setup
# ============================================================================

@dataclass(frozen=True)
class FixtureHandle:
    """Live environment produced once per test session and shared read-only."""

    platform_cluster: str
    namespace: str
    platform: ClusterConfig
    setup: OpenMCPSetup


class OpenMCPSetup(BaseModel):
    """The minimum set of components of an openMCP installation.

    Attributes:
        namespace: Platform namespace for the operator and providers.
        operator: Operator install parameters.
        cluster_providers: Cluster providers, installed in order.
        service_providers: Service providers, installed in order.
        wait: Wait options for the environment readiness check and the
            onboarding cluster deletion.
        platform_prefix: Prefix of the randomised platform cluster name.
    """

    namespace: str = DEFAULT_OPENMCP_NAMESPACE
    operator: OperatorSetup
    cluster_providers: list[ClusterProviderSetup] = Field(default_factory=list)
    service_providers: list[ServiceProviderSetup] = Field(default_factory=list)
    wait: WaitOptions | None = None
    platform_prefix: str = PLATFORM_CLUSTER_PREFIX

    @classmethod
    def from_settings(cls, settings: FixtureSettings | None = None) -> OpenMCPSetup:
        """Build a setup from settings and the bundled default providers."""
        settings = settings or FixtureSettings()
        wait = settings.wait_options()
        return cls(
            namespace=settings.namespace,
            operator=OperatorSetup(
                name=settings.operator_name,
                image=settings.operator_image,
                environment=settings.operator_environment,
                platform_name=settings.platform_name,
                wait=wait,
            ),
            cluster_providers=[cp.model_copy(update={"wait": wait}) for cp in default_cluster_providers()],
            service_providers=[sp.model_copy(update={"wait": wait}) for sp in default_service_providers()],
            wait=wait,
            platform_prefix=settings.platform_prefix,
        )

    def bootstrap(
        self,
        env: Environment,
        provider: ClusterProvider | None = None,
        client_factory: Callable[[str], ObjectClient] = KubeObjectClient.from_kubeconfig,
    ) -> Environment:
        """Register the setup and finish stages of the environment.

        Returns:
            *env*, for chaining.
        """
        provider = provider or KindProvider()
        platform = random_name(self.platform_prefix, RANDOM_NAME_LENGTH)
        env.context.values[PLATFORM_CLUSTER_KEY] = platform
        operator = self.operator.model_copy(update={"namespace": self.namespace})

        env.setup("Creating platform cluster", self._create_platform_cluster(provider, platform, client_factory))
        env.setup("Creating namespace", self._create_namespace)
        env.setup("Installing openMCP operator", self._install_operator(operator))
        env.setup("Installing cluster providers", self._install_cluster_providers)
        env.setup("Loading service provider images", self._load_service_provider_images(provider, platform))
        env.setup("Installing service providers", self._install_service_providers)
        env.setup("Verifying environment", self._verify_environment)
        return self.teardown(env, provider, platform)

    def teardown(self, env: Environment, provider: ClusterProvider, platform: str) -> Environment:
        """Register the finish stages that remove *platform* and its components.

        Deletes run only when ``env.context.config`` points at the platform
        cluster; the kind cluster is destroyed either way.

        Returns:
            *env*, for chaining.
        """
        # finish stages run last registered first
        env.finish("destroy platform cluster", lambda ctx: provider.destroy(platform))
        for cp in self.cluster_providers:
            env.finish(f"delete cluster provider {cp.name}", self._on_platform(
                lambda c, name=cp.name, wait=cp.wait: delete_cluster_provider(c, name, wait)))
        env.finish("delete onboarding cluster", self._on_platform(
            lambda c: delete_cluster(c, ONBOARDING_CLUSTER_OBJECT, self.namespace, self.wait)))
        for sp in self.service_providers:
            env.finish(f"delete service provider {sp.name}", self._on_platform(
                lambda c, name=sp.name, wait=sp.wait: delete_service_provider(c, name, wait)))
        return env

    def handle(self, env: Environment) -> FixtureHandle:
        """Build the shared handle once setup has completed.

        Raises:
            FixtureError: If the platform cluster was never created.
        """
        if env.context.config is None:
            raise FixtureError("platform cluster is not available; did setup run?")
        return FixtureHandle(
            platform_cluster=env.context.values[PLATFORM_CLUSTER_KEY],
            namespace=self.namespace,
            platform=env.context.config,
            setup=self,
        )

    # -- setup stages --

    def _create_platform_cluster(
        self,
        provider: ClusterProvider,
        name: str,
        client_factory: Callable[[str], ObjectClient],
    ) -> StageFunc:
        def _stage(ctx: StageContext) -> None:
            logger.info("create platform cluster %s", name)
            with as_file(package_file(KIND_CONFIG_FILE)) as kind_config:
                provider.create(name, kind_config)
            client = client_factory(provider.kubeconfig(name))
            ctx.config = ClusterConfig(client=client, namespace=self.namespace, cluster_name=name)
        return _stage

    def _create_namespace(self, ctx: StageContext) -> None:
        namespace = ManagedObject.from_dict(
            {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": self.namespace}}
        )
        try:
            _platform(ctx).client.create(namespace)
        except AlreadyExistsError:
            logger.info("namespace %s already exists", self.namespace)

    def _install_operator(self, operator: OperatorSetup) -> StageFunc:
        def _stage(ctx: StageContext) -> None:
            cluster = _platform(ctx)
            with as_file(package_file(OPERATOR_TEMPLATE_FILE)) as template:
                create_from_template_file(cluster, template, operator)
            deployment = ManagedObject.ref("apps/v1", "Deployment", operator.name, operator.namespace)
            wait_for(deployment, cluster, DeploymentAvailable(), operator.wait)
            console.print("[green]\u2705 openMCP operator ready[/green]")
        return _stage

    def _install_cluster_providers(self, ctx: StageContext) -> None:
        for cp in self.cluster_providers:
            install_cluster_provider(_platform(ctx), cp)
            console.print(f"[green]\u2705 Cluster provider {cp.name} ready[/green]")

    def _load_service_provider_images(self, provider: ClusterProvider, platform: str) -> StageFunc:
        return compose(*(
            lambda ctx, image=sp.image: provider.load_image(platform, image)
            for sp in self.service_providers
        ))

    def _install_service_providers(self, ctx: StageContext) -> None:
        for sp in self.service_providers:
            install_service_provider(_platform(ctx), sp)
            console.print(f"[green]\u2705 Service provider {sp.name} ready[/green]")

    def _verify_environment(self, ctx: StageContext) -> None:
        cluster_ready(_platform(ctx), ONBOARDING_CLUSTER_OBJECT, self.namespace, self.wait)
        console.print("[green]\u2705 Environment ready[/green]")

    # -- finish helpers --

    @staticmethod
    def _on_platform(fn: Callable[[ClusterConfig], None]) -> StageFunc:
        def _stage(ctx: StageContext) -> None:
            if ctx.config is None:
                logger.info("platform cluster was never created, nothing to delete")
                return
            fn(ctx.config)
        return _stage


def _platform(ctx: StageContext) -> ClusterConfig:
    if ctx.config is None:
        raise FixtureError("platform cluster has not been created")
    return ctx.config
