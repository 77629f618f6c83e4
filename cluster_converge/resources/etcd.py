"""Creators for the etcd cluster backing the tenant apiserver."""

from cluster_converge.manifest import (
    CronJob,
    PodDisruptionBudget,
    Service,
    StatefulSet,
)
from cluster_converge.reconciling import NamedCreator

from .common import (
    base_app_label,
    container,
    pod_disruption_budget_spec,
    pod_template,
    service_spec,
)
from .data import TemplateData
from .names import ETCD, ETCD_CLIENT_SERVICE, ETCD_DEFRAGGER

ETCD_IMAGE = "gcr.io/etcd-development/etcd:v3.5.12"
ETCD_REPLICAS = 3
CLIENT_PORT = 2379
PEER_PORT = 2380
DEFRAG_SCHEDULE = "0 */3 * * *"


def _quorum(replicas: int) -> int:
    return replicas // 2 + 1


def service_creator() -> NamedCreator[Service]:
    """Return the creator for the headless service of the etcd members."""

    def create(svc: Service) -> Service:
        svc.metadata.labels = base_app_label(ETCD)
        svc.spec = service_spec(
            ETCD,
            {"client": (CLIENT_PORT, CLIENT_PORT), "peer": (PEER_PORT, PEER_PORT)},
            headless=True,
        )
        return svc

    return NamedCreator(ETCD_CLIENT_SERVICE, create)


def stateful_set_creator(data: TemplateData) -> NamedCreator[StatefulSet]:
    """Return the creator for the etcd stateful set."""
    namespace = data.namespace
    disk_size = data.etcd_disk_size
    image = data.image(ETCD_IMAGE)

    def create(sts: StatefulSet) -> StatefulSet:
        peers = ",".join(
            f"{ETCD}-{i}=https://{ETCD}-{i}.{ETCD_CLIENT_SERVICE}.{namespace}.svc:{PEER_PORT}"
            for i in range(ETCD_REPLICAS)
        )
        template = pod_template(
            ETCD,
            [
                container(
                    ETCD,
                    image,
                    command=["/usr/local/bin/etcd"],
                    args=[
                        "--data-dir=/var/run/etcd/pod_$(POD_NAME)/",
                        f"--initial-cluster={peers}",
                        "--initial-cluster-state=new",
                        f"--listen-client-urls=https://0.0.0.0:{CLIENT_PORT}",
                        f"--listen-peer-urls=https://0.0.0.0:{PEER_PORT}",
                    ],
                    ports={"client": CLIENT_PORT, "peer": PEER_PORT},
                    cpu="100m",
                    memory="1Gi",
                )
            ],
        )
        sts.metadata.labels = base_app_label(ETCD)
        sts.spec = {
            "replicas": ETCD_REPLICAS,
            "serviceName": ETCD_CLIENT_SERVICE,
            "podManagementPolicy": "Parallel",
            "updateStrategy": {"type": "RollingUpdate"},
            "selector": {"matchLabels": base_app_label(ETCD)},
            "template": template,
            "volumeClaimTemplates": [
                {
                    "metadata": {"name": "data"},
                    "spec": {
                        "accessModes": ["ReadWriteOnce"],
                        "resources": {"requests": {"storage": disk_size}},
                    },
                }
            ],
        }
        return sts

    return NamedCreator(ETCD, create)


def pod_disruption_budget_creator() -> NamedCreator[PodDisruptionBudget]:
    """Return the creator for a disruption budget keeping etcd in quorum."""

    def create(pdb: PodDisruptionBudget) -> PodDisruptionBudget:
        pdb.metadata.labels = base_app_label(ETCD)
        pdb.spec = pod_disruption_budget_spec(ETCD, _quorum(ETCD_REPLICAS))
        return pdb

    return NamedCreator(ETCD, create)


def cron_job_creator(data: TemplateData) -> NamedCreator[CronJob]:
    """Return the creator for the job that periodically defragments etcd."""
    namespace = data.namespace
    image = data.image(ETCD_IMAGE)

    def create(job: CronJob) -> CronJob:
        endpoints = ",".join(
            f"https://{ETCD}-{i}.{ETCD_CLIENT_SERVICE}.{namespace}.svc:{CLIENT_PORT}"
            for i in range(ETCD_REPLICAS)
        )
        job.metadata.labels = base_app_label(ETCD_DEFRAGGER)
        job.spec = {
            "schedule": DEFRAG_SCHEDULE,
            "concurrencyPolicy": "Forbid",
            "successfulJobsHistoryLimit": 0,
            "failedJobsHistoryLimit": 1,
            "jobTemplate": {
                "spec": {
                    "template": {
                        "spec": {
                            "restartPolicy": "OnFailure",
                            "containers": [
                                container(
                                    ETCD_DEFRAGGER,
                                    image,
                                    command=["etcdctl"],
                                    args=[f"--endpoints={endpoints}", "defrag"],
                                )
                            ],
                        }
                    }
                }
            },
        }
        return job

    return NamedCreator(ETCD_DEFRAGGER, create)
