# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from dataclasses import replace
from logging import Logger
from typing import Any

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.sql.aio import SqlManagementClient

# project
from azure_cleaner.purgers.rules import KindPurger, Rule, never, resource_path, system_database


def in_instance_pool(instance: Any) -> bool:
    """Pooled instances are purged along with their instance pool"""
    pool_id = getattr(instance, "instance_pool_id", None)
    return isinstance(pool_id, str) and bool(pool_id)


class SqlPurger(KindPurger):
    NAME = "SQL servers"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = SqlManagementClient(cred, subscription_id)
        super().__init__(log, self.client)
        databases = Rule(
            "SQL database",
            list_items=lambda server: self.client.databases.list_by_server(*resource_path(server)),
            delete=lambda database: self.client.databases.begin_delete(*resource_path(database)),
            excluded=system_database,
        )
        pool_databases = replace(
            databases,
            list_items=lambda pool: self.client.databases.list_by_elastic_pool(*resource_path(pool)),
        )
        elastic_pools = Rule(
            "SQL elastic pool",
            list_items=lambda server: self.client.elastic_pools.list_by_server(*resource_path(server)),
            delete=lambda pool: self.client.elastic_pools.begin_delete(*resource_path(pool)),
            cascade=(pool_databases,),
        )
        managed_databases = Rule(
            "SQL managed database",
            list_items=lambda instance: self.client.managed_databases.list_by_instance(*resource_path(instance)),
            delete=lambda database: self.client.managed_databases.begin_delete(*resource_path(database)),
            excluded=system_database,
        )
        managed_instances = Rule(
            "SQL managed instance",
            list_items=lambda _: self.client.managed_instances.list(),
            delete=lambda instance: self.client.managed_instances.begin_delete(*resource_path(instance)),
            children=(managed_databases,),
            cascade=(managed_databases,),
            excluded=in_instance_pool,
        )
        pool_instances = replace(
            managed_instances,
            list_items=lambda pool: self.client.managed_instances.list_by_instance_pool(*resource_path(pool)),
            excluded=never,
        )
        self.rules = (
            Rule(
                "SQL server",
                list_items=lambda _: self.client.servers.list(),
                delete=lambda server: self.client.servers.begin_delete(*resource_path(server)),
                children=(elastic_pools, databases),
                cascade=(databases,),
            ),
            managed_instances,
            Rule(
                "SQL instance pool",
                list_items=lambda _: self.client.instance_pools.list(),
                delete=lambda pool: self.client.instance_pools.begin_delete(*resource_path(pool)),
                children=(pool_instances,),
                cascade=(pool_instances,),
            ),
        )
