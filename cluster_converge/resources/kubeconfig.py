"""Creators for the secrets holding kubeconfigs of the tenant apiserver.

A kubeconfig is only generated when the stored one is missing or no longer
points at the expected server with the expected credentials. Regenerating it
on every pass would issue a new token each time and produce an update of the
secret on every reconcile.
"""

import base64
import logging
import secrets
from typing import Any

import yaml

from cluster_converge.exceptions import CreatorError
from cluster_converge.manifest import Secret
from cluster_converge.reconciling import NamedCreator

from .data import TemplateData
from .names import ADMIN_KUBECONFIG, ADMIN_USERNAME, IMAGE_PULL_SECRET, KUBECONFIG_SECRET_KEY, SYSTEM_MASTERS_GROUP

_LOGGER = logging.getLogger(__name__)

GROUPS_ANNOTATION = "cluster-converge.io/kubeconfig-groups"
CONTEXT_NAME = "default"
TOKEN_BYTES = 32
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"
DOCKER_CONFIG_JSON_TYPE = "kubernetes.io/dockerconfigjson"


def _kubeconfig(server: str, ca_bundle: bytes, username: str, token: str) -> bytes:
    doc: dict[str, Any] = {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {
                "name": CONTEXT_NAME,
                "cluster": {
                    "server": server,
                    "certificate-authority-data": base64.b64encode(ca_bundle).decode(),
                },
            }
        ],
        "users": [{"name": username, "user": {"token": token}}],
        "contexts": [
            {
                "name": CONTEXT_NAME,
                "context": {"cluster": CONTEXT_NAME, "user": username},
            }
        ],
        "current-context": CONTEXT_NAME,
    }
    return yaml.safe_dump(doc, sort_keys=True).encode()


def _is_valid(
    raw: bytes | None, server: str, ca_bundle: bytes, username: str
) -> bool:
    """Return True if the stored kubeconfig matches the expected settings."""
    if not raw:
        return False
    try:
        doc = yaml.safe_load(raw.decode())
    except (yaml.YAMLError, UnicodeDecodeError):
        return False
    if not isinstance(doc, dict):
        return False
    clusters = doc.get("clusters")
    users = doc.get("users")
    if not isinstance(clusters, list) or not isinstance(users, list):
        return False
    if not clusters or not users or not isinstance(clusters[0], dict):
        return False
    cluster = clusters[0].get("cluster")
    user = users[0]
    if not isinstance(cluster, dict) or not isinstance(user, dict):
        return False
    credentials = user.get("user")
    return (
        cluster.get("server") == server
        and cluster.get("certificate-authority-data")
        == base64.b64encode(ca_bundle).decode()
        and user.get("name") == username
        and isinstance(credentials, dict)
        and bool(credentials.get("token"))
    )


def _kubeconfig_creator(
    name: str,
    server: str,
    username: str,
    groups: list[str],
    ca_bundle: bytes,
) -> NamedCreator[Secret]:
    groups_value = ",".join(groups)

    def create(secret: Secret) -> Secret:
        secret.type = "Opaque"
        current = secret.data.get(KUBECONFIG_SECRET_KEY)
        if (
            _is_valid(current, server, ca_bundle, username)
            and secret.metadata.annotations.get(GROUPS_ANNOTATION) == groups_value
        ):
            return secret
        _LOGGER.debug("Generating kubeconfig %s for user %s", name, username)
        secret.data[KUBECONFIG_SECRET_KEY] = _kubeconfig(
            server, ca_bundle, username, secrets.token_hex(TOKEN_BYTES)
        )
        secret.metadata.annotations[GROUPS_ANNOTATION] = groups_value
        return secret

    return NamedCreator(name, create)


def internal_kubeconfig_creator(
    name: str, username: str, groups: list[str], data: TemplateData
) -> NamedCreator[Secret]:
    """Return the creator for a kubeconfig used by a control plane component.

    The kubeconfig points at the apiserver service inside the seed.
    """
    return _kubeconfig_creator(
        name, data.in_cluster_apiserver_url(), username, groups, data.ca_bundle
    )


def admin_kubeconfig_creator(data: TemplateData) -> NamedCreator[Secret]:
    """Return the creator for the kubeconfig handed out to the cluster owner."""
    url = data.cluster.spec.address.url
    ca_bundle = data.ca_bundle

    def create(secret: Secret) -> Secret:
        if not url:
            raise CreatorError(ADMIN_KUBECONFIG, "cluster has no spec.address.url")
        inner = _kubeconfig_creator(
            ADMIN_KUBECONFIG, url, ADMIN_USERNAME, [SYSTEM_MASTERS_GROUP], ca_bundle
        )
        return inner.creator(secret)

    return NamedCreator(ADMIN_KUBECONFIG, create)


def image_pull_secret_creator(config_json: bytes) -> NamedCreator[Secret]:
    """Return the creator for the secret used to pull control plane images."""

    def create(secret: Secret) -> Secret:
        secret.type = DOCKER_CONFIG_JSON_TYPE
        secret.data = {DOCKER_CONFIG_JSON_KEY: config_json}
        return secret

    return NamedCreator(IMAGE_PULL_SECRET, create)
