# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.rdbms.postgresql.aio import PostgreSQLManagementClient
from azure.mgmt.rdbms.postgresql_flexibleservers.aio import (
    PostgreSQLManagementClient as PostgreSQLFlexibleManagementClient,
)

# project
from azure_cleaner.purgers.azure.servers import database_server_rule
from azure_cleaner.purgers.rules import KindPurger


class PostgreSqlPurger(KindPurger):
    NAME = "PostgreSQL servers"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.single_client = PostgreSQLManagementClient(cred, subscription_id)
        self.flexible_client = PostgreSQLFlexibleManagementClient(cred, subscription_id)
        super().__init__(log, self.single_client, self.flexible_client)
        self.rules = (
            database_server_rule("PostgreSQL", self.single_client),
            database_server_rule("PostgreSQL flexible", self.flexible_client),
        )
