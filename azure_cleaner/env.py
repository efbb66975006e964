# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Callable
from json import JSONDecodeError, loads
from logging import getLogger
from os import environ
from typing import Any, TypeVar

# 3p
from jsonschema import ValidationError, validate

T = TypeVar("T")

log = getLogger(__name__)


# Settings
STORAGE_CONNECTION_SETTING = "AzureWebJobsStorage"
CLEANUP_QUEUE_NAME_SETTING = "CLEANUP_QUEUE_NAME"
AZDO_PROJECTS_SETTING = "AZDO_PROJECTS"
SUBSCRIPTIONS_SETTING = "SUBSCRIPTIONS"
SERVICE_HOOKS_CREDENTIALS_SETTING = "SERVICE_HOOKS_CREDENTIALS"
LOG_LEVEL_SETTING = "LOG_LEVEL"
DD_SITE_SETTING = "DD_SITE"
DD_API_KEY_SETTING = "DD_API_KEY"
DD_TELEMETRY_SETTING = "DD_TELEMETRY"

# Resource kind toggles
AZURE_RESOURCE_GROUPS_SETTING = "AZURE_RESOURCE_GROUPS"
AZURE_KUBERNETES_SETTING = "AZURE_KUBERNETES"
AZURE_APP_SERVICE_SETTING = "AZURE_APP_SERVICE"
AZURE_CONTAINER_APPS_SETTING = "AZURE_CONTAINER_APPS"
AZURE_CONTAINER_INSTANCES_SETTING = "AZURE_CONTAINER_INSTANCES"
AZURE_COSMOS_DB_SETTING = "AZURE_COSMOS_DB"
AZURE_MYSQL_SETTING = "AZURE_MYSQL"
AZURE_POSTGRESQL_SETTING = "AZURE_POSTGRESQL"
AZURE_SQL_SETTING = "AZURE_SQL"
AZURE_USER_ASSIGNED_IDENTITIES_SETTING = "AZURE_USER_ASSIGNED_IDENTITIES"

DEFAULT_CLEANUP_QUEUE_NAME = "cleanup-events"

STRING_LIST_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {"type": "string"},
}

CREDENTIALS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": {"type": "string"},
}


class MissingConfigOptionError(Exception):
    def __init__(self, option: str) -> None:
        super().__init__(f"Missing required configuration option: {option}")


def get_config_option(name: str) -> str:
    """Get a configuration option from the environment or raise a helpful error"""
    if option := environ.get(name):
        return option
    raise MissingConfigOptionError(name)


def parse_config_option(name: str, parse: Callable[[str], T | None], default: T) -> T:
    """Get a configuration option from the environment, parse it, or return a default"""
    try:
        value = environ.get(name)
        if value is None:
            return default
        result = parse(value)
        if result is None:
            log.error(f"Invalid value for configuration option {name}: {value}")
            return default
        return result
    except ValueError:
        log.error(f"Invalid value for configuration option {name}: {environ.get(name)}")
        return default


def is_truthy(setting_name: str) -> bool:
    return environ.get(setting_name, "").lower().strip() in {"t", "true", "1", "y", "yes"}


def is_enabled(setting_name: str) -> bool:
    """Resource kind toggles are on unless explicitly turned off"""
    return environ.get(setting_name, "").lower().strip() not in {"f", "false", "0", "n", "no"}


def deserialize_json(
    value: str, schema: dict[str, Any], post_processing: Callable[[Any], T | None] = lambda x: x
) -> T | None:
    try:
        parsed = loads(value)
        validate(instance=parsed, schema=schema)
        return post_processing(parsed)
    except (JSONDecodeError, ValidationError):
        return None


def deserialize_string_list(value: str) -> list[str] | None:
    return deserialize_json(value, STRING_LIST_SCHEMA, lambda items: [i.strip() for i in items if i.strip()])


def deserialize_credentials(value: str) -> dict[str, str] | None:
    return deserialize_json(value, CREDENTIALS_SCHEMA)


def get_string_list_option(name: str) -> list[str]:
    return parse_config_option(name, deserialize_string_list, [])


def get_service_hook_credentials() -> dict[str, str]:
    return parse_config_option(SERVICE_HOOKS_CREDENTIALS_SETTING, deserialize_credentials, {})


def get_cleanup_queue_name() -> str:
    return environ.get(CLEANUP_QUEUE_NAME_SETTING) or DEFAULT_CLEANUP_QUEUE_NAME
