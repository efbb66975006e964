# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.containerinstance.aio import ContainerInstanceManagementClient

# project
from azure_cleaner.purgers.rules import KindPurger, Rule, parse_id


class ContainerInstancesPurger(KindPurger):
    NAME = "container instances"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = ContainerInstanceManagementClient(cred, subscription_id)
        super().__init__(log, self.client)
        self.rules = (
            Rule(
                "container group",
                list_items=lambda _: self.client.container_groups.list(),
                delete=lambda group: self.client.container_groups.begin_delete(
                    parse_id(group)["resource_group"], group.name
                ),
            ),
        )
