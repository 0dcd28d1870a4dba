"""
Kubernetes integration for discovering the containers running in the cluster.
"""

import asyncio
import contextlib
import logging
import os

from kubernetes_asyncio import client, config
from kubernetes_asyncio.client import ApiClient, Configuration

from .exceptions import ContainerListingFailed
from .models import ContainerRef
from .util import reraise_as


logger = logging.getLogger(__name__)


#: Environment variable that is set for every pod running in a cluster
IN_CLUSTER_ENV_VAR = 'KUBERNETES_SERVICE_HOST'


class KubernetesClient:
    """
    Client for listing the containers running in the cluster.

    If no kubeconfig file is given and the process is running in a pod, the in-cluster
    service account is used. Otherwise the kubeconfig file (or the default location)
    is loaded, optionally with a specific context.
    """
    def __init__(self, kubeconfig = None, context = None):
        self.kubeconfig = kubeconfig
        self.context = context

    async def _load_configuration(self):
        client_config = Configuration()
        if not self.kubeconfig and os.environ.get(IN_CLUSTER_ENV_VAR):
            config.load_incluster_config(client_configuration = client_config)
        else:
            await config.load_kube_config(
                config_file = self.kubeconfig,
                context = self.context,
                client_configuration = client_config
            )
        return client_config

    @contextlib.asynccontextmanager
    async def get_api_client(self):
        """
        Async context manager that yields a configured api client.
        """
        client_config = await self._load_configuration()
        async with ApiClient(configuration = client_config) as api_client:
            yield api_client

    @reraise_as(ContainerListingFailed, 'namespaces matching selector "{0}"')
    async def get_containers_in_namespaces(self, label_selector):
        """
        Return the containers of the running pods in the namespaces matching the selector.

        An empty selector matches every namespace. Each container carries the labels of
        its namespace overlaid with the labels of its pod.
        """
        async with self.get_api_client() as api_client:
            v1 = client.CoreV1Api(api_client)
            namespaces = (await v1.list_namespace(label_selector = label_selector or None)).items
            tasks = [v1.list_namespaced_pod(ns.metadata.name) for ns in namespaces]
            pod_lists = await asyncio.gather(*tasks)
        containers = []
        for namespace, pods in zip(namespaces, pod_lists):
            namespace_labels = namespace.metadata.labels or {}
            for pod in pods.items:
                # Only running pods count as images in use
                if pod.status is None or pod.status.phase != 'Running':
                    continue
                labels = dict(namespace_labels, **(pod.metadata.labels or {}))
                containers.extend(
                    ContainerRef(
                        namespace = namespace.metadata.name,
                        pod_name = pod.metadata.name,
                        name = container.name,
                        image = container.image,
                        labels = labels
                    )
                    for container in pod.spec.containers
                )
        logger.info(f'Found {len(containers)} containers in {len(namespaces)} namespaces')
        return containers
