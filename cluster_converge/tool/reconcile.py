"""Command line tool for running reconcile passes against an in-memory store."""

from argparse import ArgumentParser, BooleanOptionalAction, _SubParsersAction as SubParsersAction
import logging
import pathlib
import sys
from typing import cast

from cluster_converge.exceptions import InputException
from cluster_converge.manifest import BaseObject, Cluster, Kind, NamedResource, read_manifest
from cluster_converge.orchestrator import (
    ClusterOrchestrator,
    OrchestratorConfig,
    PassResult,
    reconcile_user_cluster,
)
from cluster_converge.resources.data import DEFAULT_NODE_ACCESS_NETWORK
from cluster_converge.store import CachedReader, InMemoryStore, StoreEvent

from .format import SummaryFormatter, YamlFormatter

_LOGGER = logging.getLogger(__name__)


class WriteCounter:
    """Counts the writes to a store."""

    def __init__(self, store: InMemoryStore) -> None:
        """Initialize WriteCounter."""
        self.writes = 0
        self._remove = [
            store.add_listener(StoreEvent.OBJECT_CREATED, self._on_write),
            store.add_listener(StoreEvent.OBJECT_UPDATED, self._on_write),
        ]

    def _on_write(self, resource_id: NamedResource, obj: BaseObject) -> None:
        self.writes += 1

    def close(self) -> None:
        for remove in self._remove:
            remove()


class ReconcileAction:
    """cluster-converge reconcile action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "reconcile",
                help="Reconcile the control plane of clusters in a manifest",
                description=(
                    "Load the objects of a manifest into an in-memory store, run "
                    "reconcile passes for every Cluster object and print the "
                    "resulting objects."
                ),
            ),
        )
        args.add_argument(
            "manifest",
            help="Yaml file with Cluster objects and any pre-existing objects",
            type=pathlib.Path,
        )
        args.add_argument(
            "--passes",
            help="Number of passes to run for each cluster",
            type=int,
            default=1,
        )
        args.add_argument(
            "--infrastructure-ready",
            help="Mark the cloud provider infrastructure of every cluster ready",
            action=BooleanOptionalAction,
            default=False,
        )
        args.add_argument(
            "--enable-vpa",
            help="Enable updates of the vertical pod autoscalers",
            action=BooleanOptionalAction,
            default=True,
        )
        args.add_argument(
            "--user-cluster",
            help="Also reconcile the objects created inside the tenant cluster",
            action=BooleanOptionalAction,
            default=False,
        )
        args.add_argument(
            "--node-access-network",
            help="Network used to reach the nodes of the tenants",
            default=DEFAULT_NODE_ACCESS_NETWORK,
        )
        args.add_argument(
            "--image-registry",
            help="Registry replacing the registry of every control plane image",
            default=None,
        )
        args.add_argument(
            "--output",
            "-o",
            choices=["yaml", "summary"],
            default="yaml",
            help="Output format of the resulting objects",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        manifest: pathlib.Path,
        passes: int,
        infrastructure_ready: bool,
        enable_vpa: bool,
        user_cluster: bool,
        node_access_network: str,
        image_registry: str | None,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        if passes < 1:
            raise InputException(f"--passes must be at least 1, got {passes}")

        store = InMemoryStore()
        for obj in await read_manifest(manifest):
            if isinstance(obj, Cluster) and infrastructure_ready:
                obj.status.health.cloud_provider_infrastructure = True
            await store.create(obj)
        clusters = cast(list[Cluster], store.list_objects(Kind.CLUSTER))
        if not clusters:
            raise InputException(f"No Cluster objects found in {manifest}")

        reader = CachedReader(store)
        config = OrchestratorConfig(
            enable_vpa=enable_vpa,
            node_access_network=node_access_network,
            image_registry=image_registry,
        )
        orchestrator = ClusterOrchestrator(store, reader, config=config)
        results: list[BaseObject] = []
        try:
            for cluster in clusters:
                for i in range(passes):
                    result = await self._run_pass(
                        store, orchestrator, cluster.resource_id, i + 1
                    )
                    if not result.converged:
                        break
                if user_cluster:
                    user_store = InMemoryStore()
                    await reconcile_user_cluster(user_store, cluster, config=config)
                    results.extend(user_store.list_objects())
        finally:
            reader.close()

        objects = store.list_objects() + results
        if output == "summary":
            SummaryFormatter().print(objects, file=sys.stdout)
        else:
            YamlFormatter().print(objects, file=sys.stdout)

    async def _run_pass(
        self,
        store: InMemoryStore,
        orchestrator: ClusterOrchestrator,
        resource_id: NamedResource,
        number: int,
    ) -> PassResult:
        cluster = await store.get(resource_id, Cluster)
        counter = WriteCounter(store)
        try:
            result = await orchestrator.reconcile(cluster)
        finally:
            counter.close()
        message = f"{cluster.name}: pass {number} {result.outcome}, {counter.writes} writes"
        if result.reason:
            message += f" ({result.reason})"
        print(message, file=sys.stderr)
        return result
