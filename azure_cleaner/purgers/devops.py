# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import to_thread
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from hashlib import sha256
from logging import Logger, getLogger
from time import time
from typing import Any, Final

# 3p
from azure.devops.connection import Connection
from msrest.authentication import BasicAuthentication

# project
from azure_cleaner.project_url import AzdoProjectUrl, InvalidProjectUrlError
from azure_cleaner.purgers.context import PurgeContext

log = getLogger(__name__)

CONNECTION_TTL_SECONDS: Final = 60 * 60
RESOURCE_REFERENCES_EXPANSION: Final = "resourceReferences"

Projects = Mapping[AzdoProjectUrl, str]


def make_projects(entries: Iterable[str]) -> dict[AzdoProjectUrl, str]:
    """Map each `<project url>;<token>` entry to its token, keyed by the normalized project URL"""
    projects: dict[AzdoProjectUrl, str] = {}
    for entry in entries:
        raw_url, sep, token = entry.partition(";")
        if not sep or not raw_url.strip() or not token.strip():
            log.error("Invalid Azure DevOps project entry, expected '<project url>;<token>'")
            continue
        try:
            url = AzdoProjectUrl.parse(raw_url)
        except InvalidProjectUrlError:
            log.error("Invalid Azure DevOps project URL '%s'", raw_url)
            continue
        projects[url] = token.strip()
    return projects


def find_project(projects: Projects, *raw_urls: str | None) -> tuple[AzdoProjectUrl, str] | None:
    """Find the project and its token for the first of the given URLs which is configured"""
    for raw_url in raw_urls:
        if not raw_url or not raw_url.strip():
            continue
        try:
            url = AzdoProjectUrl.parse(raw_url)
        except InvalidProjectUrlError:
            log.debug("Ignoring invalid Azure DevOps URL '%s'", raw_url)
            continue
        if (token := projects.get(url)) is not None:
            return url, token
    return None


class ConnectionCache:
    """Keeps the most recently used Azure DevOps connection around for an hour"""

    def __init__(self, ttl: float = CONNECTION_TTL_SECONDS) -> None:
        self.ttl = ttl
        self._key: str | None = None
        self._connection: Connection | None = None
        self._expires_at = 0.0

    @staticmethod
    def make_key(url: AzdoProjectUrl, token: str) -> str:
        # the token changing must produce a new connection, without keeping the token itself around
        return sha256(f"{url}{token}".encode()).hexdigest()

    def get(self, url: AzdoProjectUrl, token: str) -> Connection:
        key = self.make_key(url, token)
        if self._connection is not None and self._key == key and time() < self._expires_at:
            return self._connection
        self._connection = Connection(base_url=url.organization_url, creds=BasicAuthentication("", token))
        self._key = key
        self._expires_at = time() + self.ttl
        return self._connection


@dataclass(frozen=True)
class DevOpsPurgeOptions:
    projects: Projects = field(default_factory=dict)
    project_url: str | None = None
    remote_url: str | None = None


class DevOpsPurger:
    """Deletes the resources a review app registered in the environments of its Azure DevOps project"""

    def __init__(self, connections: ConnectionCache | None = None, parent_log: Logger = log) -> None:
        self.connections = connections or ConnectionCache()
        self.log = parent_log.getChild(self.__class__.__name__)

    async def purge(self, context: PurgeContext[DevOpsPurgeOptions]) -> None:
        options = context.resource
        if not options.project_url and not options.remote_url:
            self.log.debug("No Azure DevOps URLs provided, skipping")
            return

        project = find_project(options.projects, options.project_url, options.remote_url)
        if project is None:
            self.log.warning(
                "Project for '%s' or '%s' is not configured or does not have a token",
                options.project_url,
                options.remote_url,
            )
            return

        url, token = project
        connection = self.connections.get(url, token)
        client = await to_thread(connection.clients_v7_1.get_task_agent_client)
        environments = await to_thread(client.get_environments, url.project_id_or_name)
        for env in environments or []:
            environment = await to_thread(
                client.get_environment_by_id,
                url.project_id_or_name,
                env.id,
                expands=RESOURCE_REFERENCES_EXPANSION,
            )
            resources: list[Any] = environment.resources or []
            self.log.debug(
                "Found %s resources in '%s' and environment '%s': %s",
                len(resources),
                url.project_id_or_name,
                environment.name,
                ", ".join(r.name for r in resources),
            )
            for resource in resources:
                if not context.name_matches(resource.name):
                    continue
                if context.dry_run:
                    self.log.info(
                        "Deleting resource '%s/%s' in '%s' (dry run)", environment.name, resource.name, url
                    )
                    continue
                self.log.info("Deleting resource '%s/%s' in '%s'", environment.name, resource.name, url)
                await to_thread(
                    client.delete_kubernetes_resource, url.project_id_or_name, environment.id, resource.id
                )
