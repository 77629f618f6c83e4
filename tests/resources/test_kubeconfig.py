"""Tests for the kubeconfig and key secrets."""

import copy

import pytest
import yaml

from cluster_converge.exceptions import CreatorError
from cluster_converge.manifest import Secret
from cluster_converge.reconciling import Reconciler, semantically_equal
from cluster_converge.resources import TemplateData
from cluster_converge.resources.apiserver import service_account_key_creator
from cluster_converge.resources.kubeconfig import (
    GROUPS_ANNOTATION,
    admin_kubeconfig_creator,
    image_pull_secret_creator,
    internal_kubeconfig_creator,
)
from cluster_converge.resources.names import KUBECONFIG_SECRET_KEY, SERVICE_ACCOUNT_KEY_DATA
from cluster_converge.store import InMemoryStore, StoreEvent


def test_internal_kubeconfig(data: TemplateData) -> None:
    """Test the content of a kubeconfig for a control plane component."""
    named = internal_kubeconfig_creator(
        "scheduler-kubeconfig", "system:kube-scheduler", [], data
    )
    assert named.name == "scheduler-kubeconfig"
    secret = named.creator(Secret.new(named.name, data.namespace))

    config = yaml.safe_load(secret.data[KUBECONFIG_SECRET_KEY])
    assert config["clusters"][0]["cluster"]["server"] == (
        "https://apiserver-external.cluster-tenant.svc.cluster.local.:6443"
    )
    assert config["users"][0]["name"] == "system:kube-scheduler"
    assert config["users"][0]["user"]["token"]
    assert config["current-context"] == "default"
    assert secret.metadata.annotations[GROUPS_ANNOTATION] == ""


def test_kubeconfig_stable(data: TemplateData) -> None:
    """Test that re-applying the creator keeps the payload byte for byte."""
    named = internal_kubeconfig_creator(
        "admin", "internal-admin", ["system:masters"], data
    )
    first = named.creator(Secret.new(named.name, data.namespace))
    second = named.creator(copy.deepcopy(first))

    assert second.data[KUBECONFIG_SECRET_KEY] == first.data[KUBECONFIG_SECRET_KEY]
    assert semantically_equal(first, second)


def test_kubeconfig_regenerated(data: TemplateData) -> None:
    """Test that the kubeconfig is replaced when its settings changed."""
    named = internal_kubeconfig_creator("admin", "internal-admin", [], data)
    first = named.creator(Secret.new(named.name, data.namespace))

    renamed = internal_kubeconfig_creator("admin", "other-user", [], data)
    second = renamed.creator(copy.deepcopy(first))
    assert second.data[KUBECONFIG_SECRET_KEY] != first.data[KUBECONFIG_SECRET_KEY]
    config = yaml.safe_load(second.data[KUBECONFIG_SECRET_KEY])
    assert config["users"][0]["name"] == "other-user"

    regrouped = internal_kubeconfig_creator("admin", "internal-admin", ["ops"], data)
    third = regrouped.creator(copy.deepcopy(first))
    assert third.data[KUBECONFIG_SECRET_KEY] != first.data[KUBECONFIG_SECRET_KEY]
    assert third.metadata.annotations[GROUPS_ANNOTATION] == "ops"


def test_kubeconfig_invalid_payload(data: TemplateData) -> None:
    """Test that a payload that is not a kubeconfig is replaced."""
    named = internal_kubeconfig_creator("admin", "internal-admin", [], data)
    secret = Secret.new(named.name, data.namespace)
    secret.data[KUBECONFIG_SECRET_KEY] = b"not: [a kubeconfig"
    result = named.creator(secret)
    config = yaml.safe_load(result.data[KUBECONFIG_SECRET_KEY])
    assert config["kind"] == "Config"


@pytest.mark.parametrize(
    "payload",
    [
        b"clusters: [{cluster: x}]\nusers: [{name: a}]",
        b"clusters: [{cluster: {server: s}}]\nusers: [x]",
        b"clusters: [x]\nusers: []",
        b"- clusters\n- users",
        b"clusters: [{cluster: {server: s}}]\nusers: [{name: a, user: token}]",
    ],
    ids=["cluster", "user", "clusters", "list", "credentials"],
)
def test_kubeconfig_wrong_shape(data: TemplateData, payload: bytes) -> None:
    """Test that yaml with the wrong structure is replaced."""
    named = internal_kubeconfig_creator("admin", "internal-admin", [], data)
    secret = Secret.new(named.name, data.namespace)
    secret.data[KUBECONFIG_SECRET_KEY] = payload
    result = named.creator(secret)
    config = yaml.safe_load(result.data[KUBECONFIG_SECRET_KEY])
    assert config["kind"] == "Config"
    assert config["users"][0]["name"] == "internal-admin"

    again = named.creator(copy.deepcopy(result))
    assert again.data[KUBECONFIG_SECRET_KEY] == result.data[KUBECONFIG_SECRET_KEY]


def test_admin_kubeconfig(data: TemplateData) -> None:
    """Test that the admin kubeconfig points at the external address."""
    named = admin_kubeconfig_creator(data)
    secret = named.creator(Secret.new(named.name, data.namespace))
    config = yaml.safe_load(secret.data[KUBECONFIG_SECRET_KEY])
    assert config["clusters"][0]["cluster"]["server"] == "https://tenant.example.com:6443"


def test_admin_kubeconfig_without_address(data: TemplateData) -> None:
    """Test that the admin kubeconfig requires an external address."""
    data.cluster.spec.address.url = None
    named = admin_kubeconfig_creator(data)
    with pytest.raises(CreatorError, match="spec.address.url"):
        named.creator(Secret.new(named.name, data.namespace))


def test_service_account_key_kept() -> None:
    """Test that the key is generated once."""
    named = service_account_key_creator()
    first = named.creator(Secret.new(named.name, "ns"))
    key = first.data[SERVICE_ACCOUNT_KEY_DATA]
    assert len(key) == 64

    second = named.creator(copy.deepcopy(first))
    assert second.data[SERVICE_ACCOUNT_KEY_DATA] == key


def test_image_pull_secret() -> None:
    """Test the secret used to pull images."""
    named = image_pull_secret_creator(b'{"auths": {}}')
    secret = named.creator(Secret.new(named.name, "ns"))
    assert named.name == "dockercfg"
    assert secret.type == "kubernetes.io/dockerconfigjson"
    assert secret.data == {".dockerconfigjson": b'{"auths": {}}'}


async def test_secrets_not_rewritten(store: InMemoryStore, data: TemplateData) -> None:
    """Test that a second pass over the secrets writes nothing."""
    creators = [
        service_account_key_creator(),
        admin_kubeconfig_creator(data),
        internal_kubeconfig_creator("internal", "internal-admin", ["system:masters"], data),
    ]
    reconciler = Reconciler(store)
    await reconciler.reconcile(Secret, creators, data.namespace)
    before = {obj.name: obj.data for obj in store.list_objects()}

    writes: list[str] = []
    store.add_listener(StoreEvent.OBJECT_UPDATED, lambda rid, obj: writes.append(str(rid)))
    await reconciler.reconcile(Secret, creators, data.namespace)

    assert writes == []
    assert {obj.name: obj.data for obj in store.list_objects()} == before
