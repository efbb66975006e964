# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Callable
from logging import Logger
from typing import Any, Final

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.cosmosdb.aio import CosmosDBManagementClient

# project
from azure_cleaner.purgers.rules import KindPurger, Rule, resource_path

MONGO_DB_KIND: Final = "MongoDB"
SQL_KIND: Final = "GlobalDocumentDB"

CASSANDRA_CAPABILITY: Final = "EnableCassandra"
TABLE_CAPABILITY: Final = "EnableTable"
GREMLIN_CAPABILITY: Final = "EnableGremlin"
API_CAPABILITIES: Final = frozenset({CASSANDRA_CAPABILITY, TABLE_CAPABILITY, GREMLIN_CAPABILITY})


def capabilities(account: Any) -> set[str]:
    return {c.name for c in getattr(account, "capabilities", None) or []}


def is_mongo_db(account: Any) -> bool:
    return getattr(account, "kind", None) == MONGO_DB_KIND


def has_capability(capability: str) -> Callable[[Any], bool]:
    def check(account: Any) -> bool:
        return capability in capabilities(account)

    return check


def is_sql(account: Any) -> bool:
    """NoSQL accounts are GlobalDocumentDB accounts which were not created for another API"""
    return getattr(account, "kind", None) == SQL_KIND and not capabilities(account) & API_CAPABILITIES


def nested_rule(kind: str, list_operation: Callable[..., Any], delete_operation: Callable[..., Any], **kwargs: Any) -> Rule:
    """Rule for a resource listed by the path of its parent and deleted by its own path"""
    return Rule(
        kind,
        list_items=lambda parent: list_operation(*resource_path(parent)),
        delete=lambda item: delete_operation(*resource_path(item)),
        **kwargs,
    )


class CosmosDbPurger(KindPurger):
    NAME = "Cosmos DB accounts"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = CosmosDBManagementClient(cred, subscription_id)
        super().__init__(log, self.client)
        mongo = self.client.mongo_db_resources
        cassandra = self.client.cassandra_resources
        tables = self.client.table_resources
        gremlin = self.client.gremlin_resources
        sql = self.client.sql_resources
        apis = (
            nested_rule(
                "Mongo database",
                mongo.list_mongo_db_databases,
                mongo.begin_delete_mongo_db_database,
                children=(
                    nested_rule(
                        "Mongo collection", mongo.list_mongo_db_collections, mongo.begin_delete_mongo_db_collection
                    ),
                ),
                when=is_mongo_db,
            ),
            nested_rule(
                "Cassandra keyspace",
                cassandra.list_cassandra_keyspaces,
                cassandra.begin_delete_cassandra_keyspace,
                children=(
                    nested_rule(
                        "Cassandra table", cassandra.list_cassandra_tables, cassandra.begin_delete_cassandra_table
                    ),
                ),
                when=has_capability(CASSANDRA_CAPABILITY),
            ),
            nested_rule(
                "table",
                tables.list_tables,
                tables.begin_delete_table,
                when=has_capability(TABLE_CAPABILITY),
            ),
            nested_rule(
                "Gremlin database",
                gremlin.list_gremlin_databases,
                gremlin.begin_delete_gremlin_database,
                children=(
                    nested_rule("Gremlin graph", gremlin.list_gremlin_graphs, gremlin.begin_delete_gremlin_graph),
                ),
                when=has_capability(GREMLIN_CAPABILITY),
            ),
            nested_rule(
                "SQL database",
                sql.list_sql_databases,
                sql.begin_delete_sql_database,
                children=(nested_rule("SQL container", sql.list_sql_containers, sql.begin_delete_sql_container),),
                when=is_sql,
            ),
        )
        self.rules = (
            Rule(
                "Cosmos DB account",
                list_items=lambda _: self.client.database_accounts.list(),
                delete=lambda account: self.client.database_accounts.begin_delete(*resource_path(account)),
                children=apis,
            ),
        )
