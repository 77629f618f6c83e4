"""Tests for semantic equality of stored and desired objects."""

import copy

import pytest

from cluster_converge.manifest import ConfigMap, Deployment, Secret, Service
from cluster_converge.reconciling import semantically_equal


def stored(obj):  # type: ignore[no-untyped-def]
    """Return the object with the fields the store assigns."""
    obj.metadata.uid = "uid-1"
    obj.metadata.resource_version = "7"
    obj.metadata.generation = 3
    return obj


def test_store_fields_ignored() -> None:
    """Test that identity assigned by the store is not compared."""
    current = stored(ConfigMap.new("cm", "ns"))
    desired = ConfigMap.new("cm", "ns")
    assert semantically_equal(current, desired)


def test_labels_compared() -> None:
    """Test that managed metadata is compared."""
    current = stored(ConfigMap.new("cm", "ns"))
    desired = copy.deepcopy(current)
    desired.metadata.labels["app"] = "test"
    assert not semantically_equal(current, desired)


def test_status_ignored() -> None:
    """Test that the status of workloads is not compared."""
    current = stored(Deployment.new("app", "ns"))
    current.spec = {"replicas": 1}
    current.status = {"readyReplicas": 1}
    desired = copy.deepcopy(current)
    desired.status = None
    assert semantically_equal(current, desired)

    desired.spec["replicas"] = 2
    assert not semantically_equal(current, desired)


def test_service_allocated_address_ignored() -> None:
    """Test that the address allocated to a service is not compared."""
    current = stored(Service.new("api", "ns"))
    current.spec = {"ports": [{"port": 443}], "clusterIP": "10.96.0.2", "clusterIPs": ["10.96.0.2"]}
    desired = Service.new("api", "ns")
    desired.spec = {"ports": [{"port": 443}]}
    assert semantically_equal(current, desired)


def test_secret_data_compared() -> None:
    """Test that secret payloads are compared byte for byte."""
    current = stored(Secret.new("key", "ns"))
    current.data["sa.key"] = b"\x00\x01"
    desired = copy.deepcopy(current)
    assert semantically_equal(current, desired)
    desired.data["sa.key"] = b"\x00\x02"
    assert not semantically_equal(current, desired)


def test_different_kinds() -> None:
    """Test that objects of different kinds can't be compared."""
    with pytest.raises(ValueError, match="Can't compare"):
        semantically_equal(ConfigMap.new("x", "ns"), Secret.new("x", "ns"))
