# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Iterable
from dataclasses import dataclass, field, fields
from logging import Logger, getLogger
from typing import Any, Self, cast

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.resource.subscriptions.aio import SubscriptionClient

# project
from azure_cleaner.env import (
    AZURE_APP_SERVICE_SETTING,
    AZURE_CONTAINER_APPS_SETTING,
    AZURE_CONTAINER_INSTANCES_SETTING,
    AZURE_COSMOS_DB_SETTING,
    AZURE_KUBERNETES_SETTING,
    AZURE_MYSQL_SETTING,
    AZURE_POSTGRESQL_SETTING,
    AZURE_RESOURCE_GROUPS_SETTING,
    AZURE_SQL_SETTING,
    AZURE_USER_ASSIGNED_IDENTITIES_SETTING,
    is_enabled,
)
from azure_cleaner.purgers.azure.aks import AksPurger
from azure_cleaner.purgers.azure.app_service import AppServicePurger
from azure_cleaner.purgers.azure.container_apps import ContainerAppsPurger
from azure_cleaner.purgers.azure.container_instances import ContainerInstancesPurger
from azure_cleaner.purgers.azure.cosmos_db import CosmosDbPurger
from azure_cleaner.purgers.azure.identities import UserAssignedIdentitiesPurger
from azure_cleaner.purgers.azure.mysql import MySqlPurger
from azure_cleaner.purgers.azure.postgresql import PostgreSqlPurger
from azure_cleaner.purgers.azure.resource_groups import ResourceGroupsPurger
from azure_cleaner.purgers.azure.sql import SqlPurger
from azure_cleaner.purgers.context import PurgeContext
from azure_cleaner.purgers.rules import KindPurger

log = getLogger(__name__)


@dataclass(frozen=True)
class PurgeOptions:
    """Which kinds of Azure resources to look at, in the order they are purged"""

    resource_groups: bool = field(default=True, metadata={"setting": AZURE_RESOURCE_GROUPS_SETTING})
    kubernetes: bool = field(default=True, metadata={"setting": AZURE_KUBERNETES_SETTING})
    app_service: bool = field(default=True, metadata={"setting": AZURE_APP_SERVICE_SETTING})
    container_apps: bool = field(default=True, metadata={"setting": AZURE_CONTAINER_APPS_SETTING})
    container_instances: bool = field(default=True, metadata={"setting": AZURE_CONTAINER_INSTANCES_SETTING})
    cosmos_db: bool = field(default=True, metadata={"setting": AZURE_COSMOS_DB_SETTING})
    mysql: bool = field(default=True, metadata={"setting": AZURE_MYSQL_SETTING})
    postgresql: bool = field(default=True, metadata={"setting": AZURE_POSTGRESQL_SETTING})
    sql: bool = field(default=True, metadata={"setting": AZURE_SQL_SETTING})
    user_assigned_identities: bool = field(default=True, metadata={"setting": AZURE_USER_ASSIGNED_IDENTITIES_SETTING})

    @classmethod
    def from_env(cls) -> Self:
        return cls(**{f.name: is_enabled(f.metadata["setting"]) for f in fields(cls)})


KIND_PURGERS: dict[str, type[KindPurger]] = {
    "resource_groups": ResourceGroupsPurger,
    "kubernetes": AksPurger,
    "app_service": AppServicePurger,
    "container_apps": ContainerAppsPurger,
    "container_instances": ContainerInstancesPurger,
    "cosmos_db": CosmosDbPurger,
    "mysql": MySqlPurger,
    "postgresql": PostgreSqlPurger,
    "sql": SqlPurger,
    "user_assigned_identities": UserAssignedIdentitiesPurger,
}


@dataclass(frozen=True)
class AzureResourcesPurgeOptions:
    subscriptions: tuple[str, ...] = ()
    "subscription ids or display names to purge, all visible subscriptions when empty"
    options: PurgeOptions = field(default_factory=PurgeOptions)

    def enabled_purgers(self) -> list[type[KindPurger]]:
        return [purger for name, purger in KIND_PURGERS.items() if getattr(self.options, name)]


def is_allowed(subscription: Any, allowed: Iterable[str]) -> bool:
    allowed_names = {s.lower() for s in allowed}
    if not allowed_names:
        return True
    candidates = (cast(str, subscription.subscription_id), subscription.display_name)
    return any(c.lower() in allowed_names for c in candidates if c)


class AzureResourcesPurger:
    """Deletes the Azure resources of a review app, subscription by subscription"""

    def __init__(self, cred: DefaultAzureCredential, parent_log: Logger = log) -> None:
        self.credential = cred
        self.log = parent_log.getChild(self.__class__.__name__)

    async def purge(self, context: PurgeContext[AzureResourcesPurgeOptions]) -> None:
        purge_options = context.resource
        purgers = purge_options.enabled_purgers()
        if not purgers:
            self.log.info("All Azure resource kinds are disabled, nothing to purge")
            return

        async with SubscriptionClient(self.credential) as subscription_client:
            subscriptions = [sub async for sub in subscription_client.subscriptions.list()]
        self.log.debug("Found %s subscriptions", len(subscriptions))

        for subscription in subscriptions:
            if not is_allowed(subscription, purge_options.subscriptions):
                self.log.info("Skipping subscription '%s'", subscription.display_name)
                continue
            self.log.debug("Purging subscription '%s'", subscription.display_name)
            subscription_context = context.convert(subscription)
            for purger_class in purgers:
                async with purger_class(self.log, self.credential, subscription.subscription_id) as purger:
                    await purger.purge(subscription_context)
