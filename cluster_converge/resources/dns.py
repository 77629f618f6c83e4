"""Creators for the resolver that lets the control plane resolve tenant names."""

from cluster_converge.manifest import ConfigMap, Deployment, Service
from cluster_converge.reconciling import NamedCreator

from .common import (
    base_app_label,
    container,
    deployment_spec,
    dns_service_ip,
    pod_template,
    service_spec,
)
from .data import TemplateData
from .names import DNS_RESOLVER, DNS_RESOLVER_CONFIG

COREDNS_IMAGE = "registry.k8s.io/coredns/coredns:v1.11.1"
COREFILE = "Corefile"
COREFILE_TEMPLATE = """\
{domain} {{
    forward . {dns_ip}
    errors
}}
. {{
    forward . /etc/resolv.conf
    errors
    health
}}
"""


def service_creator() -> NamedCreator[Service]:
    """Return the creator for the resolver service."""

    def create(svc: Service) -> Service:
        svc.metadata.labels = base_app_label(DNS_RESOLVER)
        svc.spec = service_spec(DNS_RESOLVER, {"dns": (53, 53)})
        return svc

    return NamedCreator(DNS_RESOLVER, create)


def deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the resolver deployment."""
    image = data.image(COREDNS_IMAGE)

    def create(dep: Deployment) -> Deployment:
        dep.metadata.labels = base_app_label(DNS_RESOLVER)
        dep.spec = deployment_spec(
            DNS_RESOLVER,
            pod_template(
                DNS_RESOLVER,
                [
                    container(
                        DNS_RESOLVER,
                        image,
                        args=["-conf", f"/etc/coredns/{COREFILE}"],
                        ports={"dns": 53},
                        volume_mounts={DNS_RESOLVER_CONFIG: "/etc/coredns"},
                    )
                ],
            ),
            replicas=2,
        )
        dep.spec["template"]["spec"]["volumes"] = [
            {"name": DNS_RESOLVER_CONFIG, "configMap": {"name": DNS_RESOLVER_CONFIG}}
        ]
        return dep

    return NamedCreator(DNS_RESOLVER, create)


def config_map_creator(data: TemplateData) -> NamedCreator[ConfigMap]:
    """Return the creator for the resolver configuration."""
    cluster = data.cluster

    def create(cm: ConfigMap) -> ConfigMap:
        cm.metadata.labels = base_app_label(DNS_RESOLVER)
        cm.data[COREFILE] = COREFILE_TEMPLATE.format(
            domain=cluster.spec.cluster_network.dns_domain,
            dns_ip=dns_service_ip(DNS_RESOLVER_CONFIG, cluster),
        )
        return cm

    return NamedCreator(DNS_RESOLVER_CONFIG, create)
