"""Tests for the object model."""

from pathlib import Path

import pytest

from cluster_converge.exceptions import InputException
from cluster_converge.manifest import (
    Cluster,
    ConfigMap,
    Kind,
    NamedResource,
    Secret,
    parse_raw_obj,
    read_manifest,
)


def test_parse_cluster() -> None:
    """Test parsing a tenant cluster document."""
    obj = parse_raw_obj(
        {
            "apiVersion": "cluster-converge.io/v1",
            "kind": "Cluster",
            "metadata": {
                "name": "tenant",
                "annotations": {"cluster-converge.io/external-control-plane": "true"},
            },
            "spec": {
                "cloud": {"dc": "dc-1"},
                "clusterNetwork": {"pods": {"cidrBlocks": ["172.25.0.0/16"]}},
            },
        }
    )
    assert isinstance(obj, Cluster)
    assert obj.resource_id == NamedResource(Kind.CLUSTER, None, "tenant")
    assert obj.spec.cloud.datacenter_name == "dc-1"
    assert obj.spec.cluster_network.pods.cidr_blocks == ["172.25.0.0/16"]
    assert obj.spec.cluster_network.dns_domain == "cluster.local"
    assert obj.spec.address.port == 6443
    assert obj.namespace_name == "cluster-tenant"
    assert obj.externally_managed
    assert not obj.status.health.cloud_provider_infrastructure


def test_document() -> None:
    """Test the document of an object includes its type."""
    cm = ConfigMap.new("settings", "ns")
    cm.data["key"] = "value"
    assert cm.document() == {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": "settings", "namespace": "ns"},
        "data": {"key": "value"},
    }


def test_secret_data() -> None:
    """Test that secret payloads are decoded to bytes."""
    obj = parse_raw_obj(
        {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": "key", "namespace": "ns"},
            "data": {"sa.key": "c2VjcmV0"},
        }
    )
    assert isinstance(obj, Secret)
    assert obj.data == {"sa.key": b"secret"}


@pytest.mark.parametrize(
    ("doc", "match"),
    [
        ({"kind": "Pod", "metadata": {"name": "x"}}, "Unsupported object kind 'Pod'"),
        ({"kind": "ConfigMap", "metadata": {}}, "missing metadata.name"),
        (
            {"kind": "ClusterRole", "metadata": {"name": "x", "namespace": "ns"}},
            "cluster scoped",
        ),
        (["not", "a", "mapping"], "Expected a mapping"),
        (
            {
                "kind": "ConfigMap",
                "metadata": {"name": "x", "namespace": "ns", "ownerReferences": [{"kind": "Cluster"}]},
            },
            "Invalid ConfigMap x",
        ),
    ],
)
def test_invalid_documents(doc: object, match: str) -> None:
    """Test that invalid documents are rejected."""
    with pytest.raises(InputException, match=match):
        parse_raw_obj(doc)  # type: ignore[arg-type]


async def test_read_manifest(tmp_path: Path) -> None:
    """Test reading the objects of a multi document file."""
    path = tmp_path / "manifest.yaml"
    path.write_text(
        """\
---
apiVersion: cluster-converge.io/v1
kind: Cluster
metadata:
  name: tenant
---
apiVersion: v1
kind: ConfigMap
metadata:
  name: settings
  namespace: cluster-tenant
data:
  key: value
""",
        encoding="utf-8",
    )
    objects = await read_manifest(path)
    assert [str(obj.resource_id) for obj in objects] == [
        "Cluster/tenant",
        "ConfigMap/cluster-tenant/settings",
    ]


async def test_read_empty_manifest(tmp_path: Path) -> None:
    """Test that a file without objects is rejected."""
    path = tmp_path / "empty.yaml"
    path.write_text("---\n", encoding="utf-8")
    with pytest.raises(InputException, match="No objects found"):
        await read_manifest(path)
