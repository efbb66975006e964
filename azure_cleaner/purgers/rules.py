# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import gather
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from logging import Logger
from types import TracebackType
from typing import Any, Self, TypeAlias, cast

# 3p
from azure.core.polling import AsyncLROPoller
from azure.mgmt.core.tools import parse_resource_id

# project
from azure_cleaner.common import is_system_database, leaf_name
from azure_cleaner.purgers.context import PurgeContext

ListItems: TypeAlias = Callable[[Any], AsyncIterable[Any]]
DeleteItem: TypeAlias = Callable[[Any], Awaitable[Any]]


def item_name(item: Any) -> str:
    return leaf_name(cast(str, item.name))


def item_id(item: Any) -> str | None:
    rid = getattr(item, "id", None)
    return rid if isinstance(rid, str) else None


def own_name(item: Any) -> tuple[str | None, ...]:
    return (item_name(item),)


def always(_: Any) -> bool:
    return True


def never(_: Any) -> bool:
    return False


def system_database(item: Any) -> bool:
    return is_system_database(item_name(item))


def parse_id(item: Any) -> dict[str, str]:
    """Resource group, parent and child names of an ARM resource, keyed as `parse_resource_id` returns them"""
    return cast(dict[str, str], parse_resource_id(cast(str, item.id)))


def resource_path(item: Any) -> list[str]:
    """Resource group followed by the names from the top level resource down to the item itself"""
    parts = parse_id(item)
    path = [parts["resource_group"], parts["name"]]
    level = 1
    while f"child_name_{level}" in parts:
        path.append(parts[f"child_name_{level}"])
        level += 1
    return path


def id_name(resource_id: str | None) -> str | None:
    """Name of the resource an ID points to, e.g. the App Service plan of a web app"""
    if not isinstance(resource_id, str) or not resource_id:
        return None
    return leaf_name(resource_id.rstrip("/"))


@dataclass(frozen=True)
class Rule:
    """How to find, match and delete one kind of resource below its parent.

    `children` are only walked when the item itself does not match (or always, before the item is tested, when
    `children_first` is set). `cascade` rules are walked with every item treated as matching, right before the
    item is deleted, for parents which cannot be deleted while they still hold their children.
    """

    kind: str
    list_items: ListItems
    delete: DeleteItem
    names: Callable[[Any], Iterable[str | None]] = own_name
    children: tuple["Rule", ...] = ()
    cascade: tuple["Rule", ...] = ()
    children_first: bool = False
    when: Callable[[Any], bool] = always
    "whether the rule applies to a given parent"
    excluded: Callable[[Any], bool] = never
    "items which are never matched nor deleted"


async def complete(operation: Awaitable[Any]) -> Any:
    """Await an SDK call, and the long running operation it started if it returned a poller"""
    result = await operation
    if isinstance(result, AsyncLROPoller):
        return await result.result()
    return result


async def delete_item(context: PurgeContext[Any], rule: Rule, item: Any, log: Logger) -> None:
    name = item_name(item)
    if context.dry_run:
        log.info("Deleting %s '%s' at '%s' (dry run)", rule.kind, name, item_id(item))
        return
    log.info("Deleting %s '%s' at '%s'", rule.kind, name, item_id(item))
    await complete(rule.delete(item))


async def purge_rules(
    context: PurgeContext[Any], rules: Iterable[Rule], parent: Any, log: Logger, force: bool = False
) -> None:
    for rule in rules:
        if rule.when(parent):
            await purge_rule(context, rule, parent, log, force)


async def purge_rule(context: PurgeContext[Any], rule: Rule, parent: Any, log: Logger, force: bool = False) -> None:
    async for item in rule.list_items(parent):
        name = item_name(item)
        if rule.excluded(item):
            log.debug("Skipping %s '%s'", rule.kind, name)
            continue

        matched = force or context.name_matches(*rule.names(item))
        if rule.children_first:
            await purge_rules(context, rule.children, item, log)

        if matched:
            if rule.cascade:
                log.info(
                    "Deleting %s for %s '%s' at '%s'",
                    ", ".join(c.kind for c in rule.cascade if c.when(item)),
                    rule.kind,
                    name,
                    item_id(item),
                )
                await purge_rules(context, rule.cascade, item, log, force=True)
            await delete_item(context, rule, item, log)
        elif not rule.children_first:
            await purge_rules(context, rule.children, item, log)


class KindPurger(AbstractAsyncContextManager["KindPurger"]):
    """Purges one kind of Azure resource within a subscription, using the SDK clients it was given"""

    NAME: str
    rules: tuple[Rule, ...] = ()

    def __init__(self, log: Logger, *clients: AbstractAsyncContextManager[Any]) -> None:
        super().__init__()
        self.log = log.getChild(self.__class__.__name__)
        self._clients = clients

    async def __aenter__(self) -> Self:
        await gather(*(client.__aenter__() for client in self._clients))
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        await gather(*(client.__aexit__(exc_type, exc_val, exc_tb) for client in self._clients))

    async def purge(self, context: PurgeContext[Any]) -> None:
        self.log.debug("Looking for %s matching %s", self.NAME, ", ".join(context.possible_names))
        await purge_rules(context, self.rules, None, self.log)
