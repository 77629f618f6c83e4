"""Inputs shared by the creators of one tenant control plane."""

from dataclasses import dataclass

from cluster_converge.manifest import Cluster
from cluster_converge.store import ObjectReader

from .names import APISERVER_EXTERNAL_SERVICE

DEFAULT_NODE_ACCESS_NETWORK = "10.254.0.0/16"
DEFAULT_ETCD_DISK_SIZE = "5Gi"


@dataclass
class TemplateData:
    """Values captured by creators when they are registered.

    An instance is built once per reconcile pass so every creator sees the
    same inputs for the whole pass.
    """

    cluster: Cluster
    """The tenant cluster the control plane belongs to."""

    reader: ObjectReader
    """Read cache, only consulted while building the registry."""

    node_access_network: str = DEFAULT_NODE_ACCESS_NETWORK
    """Network used to reach the nodes of the tenant from the seed."""

    image_registry: str | None = None
    """Registry that replaces the registry of every image when set."""

    etcd_disk_size: str = DEFAULT_ETCD_DISK_SIZE
    """Size of the volume requested for each etcd member."""

    ca_bundle: bytes = b""
    """PEM encoded certificate authority of the tenant apiserver."""

    docker_pull_config_json: bytes = b""
    """Docker config used to pull control plane images."""

    @property
    def namespace(self) -> str:
        return self.cluster.namespace_name

    def image(self, image: str) -> str:
        """Return the image reference, rewritten to the configured registry."""
        if not self.image_registry:
            return image
        host, sep, repository = image.partition("/")
        if not sep:
            return f"{self.image_registry}/{host}"
        return f"{self.image_registry}/{repository}"

    def in_cluster_apiserver_url(self) -> str:
        """Return the url of the tenant apiserver from inside the seed."""
        return (
            f"https://{APISERVER_EXTERNAL_SERVICE}.{self.namespace}.svc.cluster.local.:{self.cluster.spec.address.port}"
        )
