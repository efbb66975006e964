# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from typing import Any

# project
from azure_cleaner.purgers.rules import Rule, resource_path, system_database


def database_server_rule(engine: str, client: Any) -> Rule:
    """Rule for database servers exposing `servers` and `databases` operations, as the MySQL and PostgreSQL
    clients (single and flexible server) do.

    A matching server is emptied before it is deleted. System databases are left alone either way.
    """
    databases = Rule(
        f"{engine} database",
        list_items=lambda server: client.databases.list_by_server(*resource_path(server)),
        delete=lambda database: client.databases.begin_delete(*resource_path(database)),
        excluded=system_database,
    )
    return Rule(
        f"{engine} server",
        list_items=lambda _: client.servers.list(),
        delete=lambda server: client.servers.begin_delete(*resource_path(server)),
        children=(databases,),
        cascade=(databases,),
    )
