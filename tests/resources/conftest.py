"""Test fixtures for the resource creators."""

from collections.abc import Callable

import pytest

from cluster_converge.manifest import Cluster
from cluster_converge.resources import TemplateData
from cluster_converge.store import InMemoryStore


@pytest.fixture(name="data")
def data_fixture(
    store: InMemoryStore, make_cluster: Callable[..., Cluster]
) -> TemplateData:
    """Create the inputs of the creators for a ready cluster."""
    return TemplateData(
        cluster=make_cluster(),
        reader=store,
        ca_bundle=b"-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n",
    )
