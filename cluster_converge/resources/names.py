"""Names of the objects that make up a tenant control plane."""

# Deployments and their services
APISERVER = "apiserver"
APISERVER_EXTERNAL_SERVICE = "apiserver-external"
CONTROLLER_MANAGER = "controller-manager"
SCHEDULER = "scheduler"
DNS_RESOLVER = "dns-resolver"
OPENVPN_SERVER = "openvpn-server"
MACHINE_CONTROLLER = "machine-controller"
MACHINE_CONTROLLER_WEBHOOK = "machine-controller-webhook"
METRICS_SERVER = "metrics-server"

# StatefulSets
ETCD = "etcd"
ETCD_CLIENT_SERVICE = "etcd-client"

# CronJobs
ETCD_DEFRAGGER = "etcd-defragger"

# ConfigMaps
OPENVPN_CLIENT_CONFIGS = "openvpn-client-configs"
DNS_RESOLVER_CONFIG = "dns-resolver"

# Secrets
IMAGE_PULL_SECRET = "dockercfg"
SERVICE_ACCOUNT_KEY = "service-account-key"
SERVICE_ACCOUNT_KEY_DATA = "sa.key"
KUBECONFIG_SECRET_KEY = "kubeconfig"
ADMIN_KUBECONFIG = "admin-kubeconfig"
INTERNAL_ADMIN_KUBECONFIG = "internal-admin-kubeconfig"
SCHEDULER_KUBECONFIG = "scheduler-kubeconfig"
CONTROLLER_MANAGER_KUBECONFIG = "controllermanager-kubeconfig"
MACHINE_CONTROLLER_KUBECONFIG = "machinecontroller-kubeconfig"
METRICS_SERVER_KUBECONFIG = "metrics-server-kubeconfig"
DNAT_CONTROLLER_KUBECONFIG = "kubeletdnatcontroller-kubeconfig"

# Users the kubeconfigs authenticate as
ADMIN_USERNAME = "admin"
INTERNAL_ADMIN_USERNAME = "cluster-converge-internal-admin"
SCHEDULER_USERNAME = "system:kube-scheduler"
CONTROLLER_MANAGER_USERNAME = "system:kube-controller-manager"
MACHINE_CONTROLLER_USERNAME = "machine-controller"
METRICS_SERVER_USERNAME = "metrics-server"
DNAT_CONTROLLER_USERNAME = "kubelet-dnat-controller"
SYSTEM_MASTERS_GROUP = "system:masters"

# Cluster scoped objects in the tenant cluster
DNAT_CONTROLLER_CLUSTER_ROLE = "system:cluster-converge:kubelet-dnat-controller"
METRICS_SERVER_CLUSTER_ROLE = "system:metrics-server"
MACHINE_CRD = "machines.cluster.k8s.io"
MACHINE_SET_CRD = "machinesets.cluster.k8s.io"
MACHINE_DEPLOYMENT_CRD = "machinedeployments.cluster.k8s.io"
CLUSTER_CRD = "clusters.cluster.k8s.io"
