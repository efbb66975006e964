# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import to_thread
from collections.abc import AsyncGenerator
from logging import Logger
from typing import Any, Final, NamedTuple

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.containerservice.aio import ContainerServiceClient
from kubernetes.client import CoreV1Api
from kubernetes.config import new_client_from_config_dict
from yaml import safe_load

# project
from azure_cleaner.purgers.rules import KindPurger, Rule, parse_id

STOPPED_POWER_STATE: Final = "Stopped"


class Namespace(NamedTuple):
    id: str
    name: str
    api: CoreV1Api


def is_running(cluster: Any) -> bool:
    """Stopped clusters have no API server to list namespaces from"""
    power_state = getattr(cluster, "power_state", None)
    return power_state is None or power_state.code != STOPPED_POWER_STATE


class AksPurger(KindPurger):
    NAME = "AKS clusters"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = ContainerServiceClient(cred, subscription_id)
        super().__init__(log, self.client)
        namespaces = Rule(
            "Kubernetes namespace",
            list_items=self.list_namespaces,
            delete=self.delete_namespace,
            when=is_running,
        )
        self.rules = (
            Rule(
                "AKS cluster",
                list_items=lambda _: self.client.managed_clusters.list(),
                delete=lambda cluster: self.client.managed_clusters.begin_delete(
                    parse_id(cluster)["resource_group"], cluster.name
                ),
                children=(namespaces,),
            ),
        )

    async def kubernetes_api(self, cluster: Any) -> CoreV1Api:
        credentials = await self.client.managed_clusters.list_cluster_admin_credentials(
            parse_id(cluster)["resource_group"], cluster.name
        )
        kubeconfig = safe_load(credentials.kubeconfigs[0].value)
        return CoreV1Api(new_client_from_config_dict(kubeconfig))

    async def list_namespaces(self, cluster: Any) -> AsyncGenerator[Namespace]:
        api = await self.kubernetes_api(cluster)
        try:
            # every namespace is listed and matched by name
            result = await to_thread(api.list_namespace)
            names = [ns.metadata.name for ns in result.items]
            self.log.debug("Found %s Kubernetes namespaces in cluster '%s'", len(names), cluster.name)
            for name in names:
                yield Namespace(id=f"{cluster.id}/namespaces/{name}", name=name, api=api)
        finally:
            api.api_client.close()

    @staticmethod
    async def delete_namespace(namespace: Namespace) -> None:
        await to_thread(namespace.api.delete_namespace, namespace.name)
