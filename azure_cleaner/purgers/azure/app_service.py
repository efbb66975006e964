# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger
from typing import Any

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.web.aio import WebSiteManagementClient

# project
from azure_cleaner.purgers.rules import KindPurger, Rule, id_name, item_name, parse_id


def site_names(site: Any) -> tuple[str | None, ...]:
    """A web app also goes when the App Service plan it runs on was made for the review app"""
    return item_name(site), id_name(getattr(site, "server_farm_id", None))


class AppServicePurger(KindPurger):
    NAME = "App Service sites"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = WebSiteManagementClient(cred, subscription_id)
        super().__init__(log, self.client)
        slots = Rule(
            "web app slot",
            list_items=lambda site: self.client.web_apps.list_slots(parse_id(site)["resource_group"], site.name),
            delete=self.delete_slot,
        )
        builds = Rule(
            "static site build",
            list_items=lambda site: self.client.static_sites.get_static_site_builds(
                parse_id(site)["resource_group"], site.name
            ),
            delete=self.delete_build,
        )
        self.rules = (
            Rule(
                "web app",
                list_items=lambda _: self.client.web_apps.list(),
                delete=self.delete_site,
                names=site_names,
                children=(slots,),
                children_first=True,
            ),
            Rule(
                "static site",
                list_items=lambda _: self.client.static_sites.list(),
                delete=lambda site: self.client.static_sites.begin_delete_static_site(
                    parse_id(site)["resource_group"], site.name
                ),
                children=(builds,),
            ),
        )

    async def delete_site(self, site: Any) -> None:
        await self.client.web_apps.delete(
            parse_id(site)["resource_group"],
            site.name,
            delete_metrics=True,
            delete_empty_server_farm=False,
        )

    async def delete_slot(self, slot: Any) -> None:
        parts = parse_id(slot)
        await self.client.web_apps.delete_slot(
            parts["resource_group"],
            parts["name"],
            parts["child_name_1"],
            delete_metrics=True,
            delete_empty_server_farm=False,
        )

    async def delete_build(self, build: Any) -> Any:
        parts = parse_id(build)
        return await self.client.static_sites.begin_delete_static_site_build(
            parts["resource_group"], parts["name"], parts["child_name_1"]
        )
