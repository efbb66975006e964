# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Iterable
from datetime import datetime
from typing import Final

CLEANER_METRIC_PREFIX: Final = "azure_cleaner."

REVIEW_APP_NAME_FORMATS: Final = ("review-app-{}", "ra-{}", "ra{}")

# built-in databases which are never matched nor deleted, even when the whole server is being purged
SQL_SYSTEM_DATABASES: Final = frozenset({"master"})
MYSQL_SYSTEM_DATABASES: Final = frozenset({"mysql", "sys", "information_schema", "performance_schema"})
POSTGRESQL_SYSTEM_DATABASES: Final = frozenset({"postgres", "azure_maintenance", "azure_sys"})
SYSTEM_DATABASES: Final = SQL_SYSTEM_DATABASES | MYSQL_SYSTEM_DATABASES | POSTGRESQL_SYSTEM_DATABASES


def make_possible_names(ids: Iterable[int]) -> list[str]:
    """Names a review app for any of the pull requests could have, duplicates removed

    Example:
    >>> make_possible_names([23765])
    ['review-app-23765', 'ra-23765', 'ra23765']
    """
    return list(dict.fromkeys(fmt.format(pr_id) for pr_id in ids for fmt in REVIEW_APP_NAME_FORMATS))


def name_matches(possible_names: Iterable[str], name: str | None) -> bool:
    """Names are anchored at either end, so `fabrikam-sites-ra-23765` matches `ra-23765`"""
    if not name:
        return False
    return any(name.endswith(n) or name.startswith(n) for n in possible_names)


def leaf_name(name: str) -> str:
    """Child resources such as web app slots are named `parent/child`"""
    return name.rsplit("/", 1)[-1]


def is_system_database(name: str | None) -> bool:
    if not name:
        return False
    return leaf_name(name).lower() in SYSTEM_DATABASES


def now() -> str:
    """Return the current time in ISO format"""
    return datetime.now().isoformat()

