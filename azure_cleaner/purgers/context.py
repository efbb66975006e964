# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

# project
from azure_cleaner.common import make_possible_names, name_matches

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class PurgeContext(Generic[T]):
    """What to look for, and whether to actually delete it, along with whatever the current purger is scoped to"""

    resource: T
    possible_names: tuple[str, ...]
    dry_run: bool = False

    @classmethod
    def create(cls, ids: Iterable[int], dry_run: bool = False) -> "PurgeContext[Any]":
        return PurgeContext(resource=None, possible_names=tuple(make_possible_names(ids)), dry_run=dry_run)

    def name_matches(self, *names: str | None) -> bool:
        return any(name_matches(self.possible_names, name) for name in names)

    def convert(self, resource: U) -> "PurgeContext[U]":
        return PurgeContext(resource=resource, possible_names=self.possible_names, dry_run=self.dry_run)
