from kubernetes import client, config as k8s_config
from kubernetes.config.config_exception import ConfigException


def init_apps_client():
    try:
        k8s_config.load_incluster_config()
        print("Loaded in-cluster config", flush=True)
    except ConfigException:
        k8s_config.load_kube_config()
        print("Loaded local kubeconfig", flush=True)
    return client.AppsV1Api()


class DeploymentScaler:
    """Reads and sets the replica count of one Deployment.

    ``ApiException`` from the kubernetes client is left to the caller.
    """

    def __init__(self, deployment_name, namespace, apps_v1=None):
        self.deployment_name = deployment_name
        self.namespace = namespace
        self.apps_v1 = apps_v1 or client.AppsV1Api()

    @property
    def pool(self):
        return f"{self.namespace}/{self.deployment_name}"

    def get_current_replicas(self):
        dep = self.apps_v1.read_namespaced_deployment(self.deployment_name, self.namespace)
        return (dep.status.replicas if dep.status else None) or 0

    def set_replicas(self, replicas):
        body = {"spec": {"replicas": int(replicas)}}
        self.apps_v1.patch_namespaced_deployment(self.deployment_name, self.namespace, body)
