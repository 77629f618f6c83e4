"""Representation of the objects managed in the resource store.

Every object kind the engine converges is a dataclass here. The fields that
the engine itself manipulates are typed, while the bulk of a workload spec is
kept as a free-form dictionary since its content is supplied by the creators
and not interpreted by the engine.

Objects serialize to and from the camelCase documents used by the store with
mashumaro, so they may be read from or written to yaml manifests.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import logging
from pathlib import Path
from typing import Any, ClassVar, TypeVar

import aiofiles
from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField
import yaml

from .exceptions import InputException

__all__ = [
    "Kind",
    "NamedResource",
    "ObjectMeta",
    "OwnerReference",
    "BaseObject",
    "Namespace",
    "Service",
    "Secret",
    "ConfigMap",
    "StatefulSet",
    "Deployment",
    "CronJob",
    "PodDisruptionBudget",
    "VerticalPodAutoscaler",
    "ClusterRole",
    "CustomResourceDefinition",
    "Cluster",
    "parse_raw_obj",
    "read_manifest",
]

_LOGGER = logging.getLogger(__name__)

CLUSTER_API_VERSION = "cluster-converge.io/v1"
EXTERNAL_CONTROL_PLANE_ANNOTATION = "cluster-converge.io/external-control-plane"
NAMESPACE_PREFIX = "cluster-"


class Kind(StrEnum):
    """Resource categories known to the engine."""

    NAMESPACE = "Namespace"
    SERVICE = "Service"
    SECRET = "Secret"
    CONFIG_MAP = "ConfigMap"
    STATEFUL_SET = "StatefulSet"
    DEPLOYMENT = "Deployment"
    CRON_JOB = "CronJob"
    POD_DISRUPTION_BUDGET = "PodDisruptionBudget"
    VERTICAL_POD_AUTOSCALER = "VerticalPodAutoscaler"
    CLUSTER_ROLE = "ClusterRole"
    CUSTOM_RESOURCE_DEFINITION = "CustomResourceDefinition"
    CLUSTER = "Cluster"


# Kinds that are not placed in a namespace.
CLUSTER_SCOPED: set[Kind] = {
    Kind.NAMESPACE,
    Kind.CLUSTER_ROLE,
    Kind.CUSTOM_RESOURCE_DEFINITION,
    Kind.CLUSTER,
}


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    class Config(BaseConfig):
        omit_none = True
        omit_default = True
        serialize_by_alias = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for an object in the store."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class OwnerReference(BaseManifest):
    """Garbage collection link from a child object to its owner."""

    api_version: str = field(metadata=field_options(alias="apiVersion"))
    """The api version of the owner."""

    kind: str
    """The kind of the owner."""

    name: str
    """The name of the owner."""

    uid: str
    """The unique id of the owner assigned by the store."""

    controller: bool
    """Whether the owner is the managing controller of the object."""

    block_owner_deletion: bool = field(
        metadata=field_options(alias="blockOwnerDeletion")
    )
    """Whether the owner can't be deleted before this object is removed."""


@dataclass
class ObjectMeta(BaseManifest):
    """Metadata common to all objects in the store."""

    name: str = ""
    namespace: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: list[OwnerReference] = field(
        default_factory=list, metadata=field_options(alias="ownerReferences")
    )

    # Fields below are assigned by the store
    uid: str | None = None
    resource_version: str | None = field(
        default=None, metadata=field_options(alias="resourceVersion")
    )
    generation: int | None = None


@dataclass
class BaseObject(BaseManifest):
    """Base class for all objects held in the store."""

    kind: ClassVar[Kind]
    api_version: ClassVar[str]

    metadata: ObjectMeta = field(default_factory=ObjectMeta)

    @classmethod
    def new(cls: type["T"], name: str, namespace: str | None = None) -> "T":
        """Return an empty object with only its identity set."""
        return cls(metadata=ObjectMeta(name=name, namespace=namespace))

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def resource_id(self) -> NamedResource:
        """Return the identity of the object in the store."""
        return NamedResource(self.kind, self.metadata.namespace, self.metadata.name)

    def document(self) -> dict[str, Any]:
        """Return the full document for this object including its type."""
        return {
            "apiVersion": self.api_version,
            "kind": str(self.kind),
            **self.to_dict(),
        }

    @classmethod
    def parse_doc(cls: type["T"], doc: dict[str, Any]) -> "T":
        """Parse an object of this kind from a document."""
        if doc.get("kind") != cls.kind:
            raise InputException(f"Invalid object expected kind '{cls.kind}': {doc}")
        if not (metadata := doc.get("metadata")) or not metadata.get("name"):
            raise InputException(f"Invalid {cls.kind} missing metadata.name: {doc}")
        if cls.kind in CLUSTER_SCOPED and metadata.get("namespace"):
            raise InputException(
                f"Invalid {cls.kind} is cluster scoped but has a namespace: {doc}"
            )
        try:
            return cls.from_dict(doc)
        except (MissingField, InvalidFieldValue) as err:
            raise InputException(f"Invalid {cls.kind} {metadata['name']}: {err}") from err


T = TypeVar("T", bound=BaseObject)


@dataclass
class Namespace(BaseObject):
    """A Namespace holds all the objects of one tenant."""

    kind: ClassVar[Kind] = Kind.NAMESPACE
    api_version: ClassVar[str] = "v1"


@dataclass
class Service(BaseObject):
    """A Service exposes a set of pods on the network."""

    kind: ClassVar[Kind] = Kind.SERVICE
    api_version: ClassVar[str] = "v1"

    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] | None = None


@dataclass
class Secret(BaseObject):
    """A Secret contains a small amount of sensitive data."""

    kind: ClassVar[Kind] = Kind.SECRET
    api_version: ClassVar[str] = "v1"

    type: str | None = None
    """The type of the Secret e.g. Opaque."""

    data: dict[str, bytes] = field(default_factory=dict)
    """The payload of the Secret, base64 encoded when serialized."""


@dataclass
class ConfigMap(BaseObject):
    """A ConfigMap holds configuration data for pods to consume."""

    kind: ClassVar[Kind] = Kind.CONFIG_MAP
    api_version: ClassVar[str] = "v1"

    data: dict[str, str] = field(default_factory=dict)
    binary_data: dict[str, bytes] = field(
        default_factory=dict, metadata=field_options(alias="binaryData")
    )


@dataclass
class StatefulSet(BaseObject):
    """A StatefulSet runs pods with stable identity and storage."""

    kind: ClassVar[Kind] = Kind.STATEFUL_SET
    api_version: ClassVar[str] = "apps/v1"

    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] | None = None


@dataclass
class Deployment(BaseObject):
    """A Deployment runs a set of interchangeable pods."""

    kind: ClassVar[Kind] = Kind.DEPLOYMENT
    api_version: ClassVar[str] = "apps/v1"

    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] | None = None


@dataclass
class CronJob(BaseObject):
    """A CronJob runs a job on a schedule."""

    kind: ClassVar[Kind] = Kind.CRON_JOB
    api_version: ClassVar[str] = "batch/v1"

    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] | None = None


@dataclass
class PodDisruptionBudget(BaseObject):
    """A PodDisruptionBudget limits voluntary disruption of a set of pods."""

    kind: ClassVar[Kind] = Kind.POD_DISRUPTION_BUDGET
    api_version: ClassVar[str] = "policy/v1"

    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] | None = None


class UpdateMode(StrEnum):
    """How the vertical pod autoscaler applies its recommendations."""

    OFF = "Off"
    INITIAL = "Initial"
    RECREATE = "Recreate"
    AUTO = "Auto"


@dataclass
class CrossVersionObjectReference(BaseManifest):
    """Reference to the object scaled by an autoscaler."""

    api_version: str = field(metadata=field_options(alias="apiVersion"))
    kind: str
    name: str


@dataclass
class PodUpdatePolicy(BaseManifest):
    """Update policy of a vertical pod autoscaler."""

    update_mode: UpdateMode | None = field(
        default=None, metadata=field_options(alias="updateMode")
    )


@dataclass
class VerticalPodAutoscalerSpec(BaseManifest):
    """Desired behavior of a vertical pod autoscaler."""

    target_ref: CrossVersionObjectReference | None = field(
        default=None, metadata=field_options(alias="targetRef")
    )
    update_policy: PodUpdatePolicy | None = field(
        default=None, metadata=field_options(alias="updatePolicy")
    )
    resource_policy: dict[str, Any] | None = field(
        default=None, metadata=field_options(alias="resourcePolicy")
    )


@dataclass
class VerticalPodAutoscaler(BaseObject):
    """A VerticalPodAutoscaler adjusts the resource requests of pods."""

    kind: ClassVar[Kind] = Kind.VERTICAL_POD_AUTOSCALER
    api_version: ClassVar[str] = "autoscaling.k8s.io/v1"

    spec: VerticalPodAutoscalerSpec = field(default_factory=VerticalPodAutoscalerSpec)
    status: dict[str, Any] | None = None


@dataclass
class PolicyRule(BaseManifest):
    """A set of permissions granted by a role."""

    api_groups: list[str] = field(
        default_factory=list, metadata=field_options(alias="apiGroups")
    )
    resources: list[str] = field(default_factory=list)
    verbs: list[str] = field(default_factory=list)
    resource_names: list[str] = field(
        default_factory=list, metadata=field_options(alias="resourceNames")
    )


@dataclass
class ClusterRole(BaseObject):
    """A ClusterRole is a cluster wide set of permissions."""

    kind: ClassVar[Kind] = Kind.CLUSTER_ROLE
    api_version: ClassVar[str] = "rbac.authorization.k8s.io/v1"

    rules: list[PolicyRule] = field(default_factory=list)


@dataclass
class CustomResourceDefinitionNames(BaseManifest):
    """Names used to serve a custom resource."""

    kind: str = ""
    list_kind: str | None = field(
        default=None, metadata=field_options(alias="listKind")
    )
    plural: str = ""
    singular: str | None = None
    short_names: list[str] = field(
        default_factory=list, metadata=field_options(alias="shortNames")
    )


class ResourceScope(StrEnum):
    """Whether a custom resource lives in a namespace."""

    NAMESPACED = "Namespaced"
    CLUSTER = "Cluster"


@dataclass
class CustomResourceDefinitionSpec(BaseManifest):
    """Desired state of a custom resource definition."""

    group: str = ""
    version: str = ""
    scope: ResourceScope = ResourceScope.NAMESPACED
    names: CustomResourceDefinitionNames = field(
        default_factory=CustomResourceDefinitionNames
    )
    subresources: dict[str, Any] | None = None


@dataclass
class CustomResourceDefinition(BaseObject):
    """A CustomResourceDefinition registers a new kind with the store."""

    kind: ClassVar[Kind] = Kind.CUSTOM_RESOURCE_DEFINITION
    api_version: ClassVar[str] = "apiextensions.k8s.io/v1"

    spec: CustomResourceDefinitionSpec = field(
        default_factory=CustomResourceDefinitionSpec
    )
    status: dict[str, Any] | None = None


@dataclass
class NetworkRanges(BaseManifest):
    """A list of network blocks in CIDR notation."""

    cidr_blocks: list[str] = field(
        default_factory=list, metadata=field_options(alias="cidrBlocks")
    )


@dataclass
class ClusterNetwork(BaseManifest):
    """Network configuration of a tenant cluster."""

    pods: NetworkRanges = field(default_factory=NetworkRanges)
    services: NetworkRanges = field(default_factory=NetworkRanges)
    dns_domain: str = field(
        default="cluster.local", metadata=field_options(alias="dnsDomain")
    )


@dataclass
class ClusterAddress(BaseManifest):
    """Externally reachable address of the tenant apiserver."""

    url: str | None = None
    external_name: str | None = field(
        default=None, metadata=field_options(alias="externalName")
    )
    port: int = 6443


@dataclass
class CloudSpec(BaseManifest):
    """The cloud the tenant cluster nodes run in."""

    datacenter_name: str | None = field(
        default=None, metadata=field_options(alias="dc")
    )


@dataclass
class ClusterSpec(BaseManifest):
    """Desired state of a tenant cluster."""

    version: str | None = None
    cloud: CloudSpec = field(default_factory=CloudSpec)
    cluster_network: ClusterNetwork = field(
        default_factory=ClusterNetwork,
        metadata=field_options(alias="clusterNetwork"),
    )
    address: ClusterAddress = field(default_factory=ClusterAddress)


@dataclass
class ClusterHealth(BaseManifest):
    """Readiness of the components a tenant cluster depends on."""

    cloud_provider_infrastructure: bool = field(
        default=False, metadata=field_options(alias="cloudProviderInfrastructure")
    )


@dataclass
class ClusterStatus(BaseManifest):
    """Observed state of a tenant cluster."""

    namespace_name: str | None = field(
        default=None, metadata=field_options(alias="namespaceName")
    )
    health: ClusterHealth = field(default_factory=ClusterHealth)


@dataclass
class Cluster(BaseObject):
    """A Cluster is a tenant whose control plane is managed in the seed."""

    kind: ClassVar[Kind] = Kind.CLUSTER
    api_version: ClassVar[str] = CLUSTER_API_VERSION

    spec: ClusterSpec = field(default_factory=ClusterSpec)
    status: ClusterStatus = field(default_factory=ClusterStatus)

    @property
    def namespace_name(self) -> str:
        """Return the namespace holding the control plane of the cluster."""
        return self.status.namespace_name or f"{NAMESPACE_PREFIX}{self.name}"

    @property
    def externally_managed(self) -> bool:
        """Return True if the control plane is managed outside of this engine."""
        value = self.metadata.annotations.get(EXTERNAL_CONTROL_PLANE_ANNOTATION, "")
        return value != ""


KIND_CLASSES: dict[Kind, type[BaseObject]] = {
    cls.kind: cls
    for cls in (
        Namespace,
        Service,
        Secret,
        ConfigMap,
        StatefulSet,
        Deployment,
        CronJob,
        PodDisruptionBudget,
        VerticalPodAutoscaler,
        ClusterRole,
        CustomResourceDefinition,
        Cluster,
    )
}


def parse_raw_obj(doc: dict[str, Any]) -> BaseObject:
    """Parse a raw document into the object class for its kind."""
    if not isinstance(doc, dict):
        raise InputException(f"Expected a mapping but got {type(doc).__name__}")
    kind = doc.get("kind")
    try:
        cls = KIND_CLASSES[Kind(kind)]
    except ValueError as err:
        raise InputException(f"Unsupported object kind '{kind}'") from err
    _LOGGER.debug("Parsing %s object", kind)
    return cls.parse_doc(doc)


async def read_manifest(manifest_path: Path) -> list[BaseObject]:
    """Return the objects of a yaml file holding one or more documents."""
    async with aiofiles.open(str(manifest_path)) as manifest_file:
        content = await manifest_file.read()
    try:
        docs = [doc for doc in yaml.safe_load_all(content) if doc is not None]
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse yaml in {manifest_path}: {err}") from err
    if not docs:
        raise InputException(f"No objects found in manifest file {manifest_path}")
    return [parse_raw_obj(doc) for doc in docs]
