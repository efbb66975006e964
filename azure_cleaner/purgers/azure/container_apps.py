# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger
from typing import Any

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.appcontainers.aio import ContainerAppsAPIClient

# project
from azure_cleaner.purgers.rules import KindPurger, Rule, id_name, item_name, parse_id


def app_names(app: Any) -> tuple[str | None, ...]:
    environment_id = getattr(app, "managed_environment_id", None) or getattr(app, "environment_id", None)
    return item_name(app), id_name(environment_id)


def job_names(job: Any) -> tuple[str | None, ...]:
    return item_name(job), id_name(getattr(job, "environment_id", None))


class ContainerAppsPurger(KindPurger):
    NAME = "Container Apps"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = ContainerAppsAPIClient(cred, subscription_id)
        super().__init__(log, self.client)
        # an environment must be empty before it can be deleted
        self.rules = (
            Rule(
                "container app",
                list_items=lambda _: self.client.container_apps.list_by_subscription(),
                delete=lambda app: self.client.container_apps.begin_delete(parse_id(app)["resource_group"], app.name),
                names=app_names,
            ),
            Rule(
                "container app job",
                list_items=lambda _: self.client.jobs.list_by_subscription(),
                delete=lambda job: self.client.jobs.begin_delete(parse_id(job)["resource_group"], job.name),
                names=job_names,
            ),
            Rule(
                "container app environment",
                list_items=lambda _: self.client.managed_environments.list_by_subscription(),
                delete=lambda env: self.client.managed_environments.begin_delete(
                    parse_id(env)["resource_group"], env.name
                ),
            ),
        )
