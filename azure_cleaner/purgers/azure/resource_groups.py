# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.resource.resources.aio import ResourceManagementClient

# project
from azure_cleaner.purgers.rules import KindPurger, Rule


class ResourceGroupsPurger(KindPurger):
    NAME = "resource groups"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = ResourceManagementClient(cred, subscription_id)
        super().__init__(log, self.client)
        self.rules = (
            Rule(
                "resource group",
                list_items=lambda _: self.client.resource_groups.list(),
                delete=lambda group: self.client.resource_groups.begin_delete(group.name),
            ),
        )
