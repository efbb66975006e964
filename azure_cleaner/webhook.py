# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from base64 import b64decode
from binascii import Error as Base64Error
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import asdict, dataclass
from hmac import compare_digest
from json import JSONDecodeError, dumps, loads
from logging import getLogger
from typing import Any, Final, Self

# 3p
from azure.core.exceptions import ResourceNotFoundError
from azure.functions import HttpRequest, HttpResponse
from azure.storage.queue import TextBase64EncodePolicy
from azure.storage.queue.aio import QueueClient
from jsonschema import Draft7Validator, ValidationError, validate

# project
from azure_cleaner.cleaner import cleaner_main
from azure_cleaner.env import (
    STORAGE_CONNECTION_SETTING,
    get_cleanup_queue_name,
    get_config_option,
    get_service_hook_credentials,
)

log = getLogger(__name__)

PULL_REQUEST_UPDATED_EVENT: Final = "git.pullrequest.updated"
CLEANUP_STATUSES: Final = frozenset({"completed", "abandoned", "draft"})

CLEANUP_DELAY_SECONDS: Final = 60

JSON_CONTENT_TYPE: Final = "application/json"
PROBLEM_CONTENT_TYPE: Final = "application/problem+json"
BAD_REQUEST_PROBLEM_TYPE: Final = "https://tools.ietf.org/html/rfc9110#section-15.5.1"

AZDO_EVENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "subscriptionId": {"type": "string", "minLength": 1},
        "notificationId": {"type": "integer"},
        "eventType": {"type": "string", "minLength": 1},
        "resource": {
            "type": "object",
            "properties": {
                "repository": {
                    "type": ["object", "null"],
                    "properties": {
                        "remoteUrl": {"type": ["string", "null"]},
                        "project": {
                            "type": ["object", "null"],
                            "properties": {"url": {"type": ["string", "null"]}},
                        },
                    },
                },
            },
        },
    },
    "required": ["subscriptionId", "eventType", "resource"],
}

CLEANUP_EVENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "ids": {"type": "array", "items": {"type": "integer"}, "minItems": 1},
        "remote_url": {"type": ["string", "null"]},
        "raw_project_url": {"type": ["string", "null"]},
    },
    "required": ["ids"],
}


class InvalidEventError(Exception):
    pass


@dataclass(frozen=True)
class CleanupEvent:
    """Pull requests whose review apps should be cleaned up, as published on the cleanup queue"""

    ids: list[int]
    remote_url: str | None = None
    raw_project_url: str | None = None

    def to_json(self) -> str:
        return dumps(asdict(self))

    @classmethod
    def from_json(cls, value: str) -> Self:
        try:
            data = loads(value)
            validate(instance=data, schema=CLEANUP_EVENT_SCHEMA)
        except (JSONDecodeError, ValidationError) as e:
            raise InvalidEventError(f"Invalid cleanup event: {e}") from e
        return cls(ids=data["ids"], remote_url=data.get("remote_url"), raw_project_url=data.get("raw_project_url"))


Publisher = Callable[[CleanupEvent, int], Awaitable[None]]


async def publish_cleanup_event(event: CleanupEvent, delay: int = CLEANUP_DELAY_SECONDS) -> None:
    """Send the event to the cleanup queue, hidden from consumers for `delay` seconds"""
    async with QueueClient.from_connection_string(
        get_config_option(STORAGE_CONNECTION_SETTING),
        get_cleanup_queue_name(),
        message_encode_policy=TextBase64EncodePolicy(),
    ) as queue:
        try:
            await queue.send_message(event.to_json(), visibility_timeout=delay)
        except ResourceNotFoundError:
            log.info("Creating queue '%s'", queue.queue_name)
            await queue.create_queue()
            await queue.send_message(event.to_json(), visibility_timeout=delay)


def is_authorized(authorization: str | None, credentials: Mapping[str, str]) -> bool:
    """Check a Basic `Authorization` header against the configured username/password pairs"""
    if not authorization or not credentials:
        return False
    scheme, _, encoded = authorization.strip().partition(" ")
    if scheme.lower() != "basic":
        return False
    try:
        decoded = b64decode(encoded.strip(), validate=True).decode()
    except (Base64Error, UnicodeDecodeError):
        return False
    username, sep, password = decoded.partition(":")
    if not sep or (expected := credentials.get(username)) is None:
        return False
    return compare_digest(expected.encode(), password.encode())


def is_json(content_type: str | None) -> bool:
    media_type = (content_type or "").split(";")[0].strip().lower()
    return media_type == JSON_CONTENT_TYPE or media_type.endswith("+json")


def validation_errors(event: Any) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in Draft7Validator(AZDO_EVENT_SCHEMA).iter_errors(event):
        key = ".".join(map(str, error.absolute_path)) or "$"
        errors.setdefault(key, []).append(error.message)
    return errors


def problem_response(errors: dict[str, list[str]]) -> HttpResponse:
    body = {
        "type": BAD_REQUEST_PROBLEM_TYPE,
        "title": "One or more validation errors occurred.",
        "status": 400,
        "errors": errors,
    }
    return HttpResponse(dumps(body), status_code=400, mimetype=PROBLEM_CONTENT_TYPE)


def make_cleanup_event(resource: dict[str, Any]) -> CleanupEvent | None:
    """Cleanup event for a pull request updated event, None when the pull request is still active"""
    pr_id = resource.get("pullRequestId")
    status = resource.get("status")
    if not isinstance(status, str) or status.lower() not in CLEANUP_STATUSES:
        log.debug("PR %s was updated but the status didn't match. Status '%s'", pr_id, status)
        return None
    if not isinstance(pr_id, int):
        raise InvalidEventError("Pull request id should be an integer")

    repository = resource.get("repository") or {}
    project = repository.get("project") or {} if isinstance(repository, dict) else None
    if not isinstance(repository, dict) or not isinstance(project, dict):
        raise InvalidEventError("Repository and its project should be objects")
    raw_project_url = project.get("url")
    if not raw_project_url:
        raise InvalidEventError("Project URL should not be null")
    remote_url = repository.get("remoteUrl")
    if not remote_url:
        raise InvalidEventError("RemoteUrl should not be null")
    return CleanupEvent(ids=[pr_id], remote_url=remote_url, raw_project_url=raw_project_url)


async def handle_webhook(req: HttpRequest, publish: Publisher = publish_cleanup_event) -> HttpResponse:
    if not is_authorized(req.headers.get("Authorization"), get_service_hook_credentials()):
        return HttpResponse(status_code=401, headers={"WWW-Authenticate": 'Basic realm="AzureCleaner"'})
    if not is_json(req.headers.get("Content-Type")):
        return HttpResponse(status_code=415)

    try:
        event = loads(req.get_body() or b"null")
    except (JSONDecodeError, UnicodeDecodeError):
        return problem_response({"$": ["The request body is not valid JSON"]})
    if errors := validation_errors(event):
        return problem_response(errors)

    event_type = event["eventType"]
    log.info(
        "Received %s notification %s on subscription %s",
        event_type,
        event.get("notificationId"),
        event["subscriptionId"].replace("\r", "").replace("\n", ""),
    )
    if event_type == PULL_REQUEST_UPDATED_EVENT:
        if cleanup_event := make_cleanup_event(event["resource"]):
            await publish(cleanup_event, CLEANUP_DELAY_SECONDS)
    else:
        log.warning("Events of type %s are not supported", event_type)

    return HttpResponse(status_code=200)


async def handle_cleanup_message(body: str) -> None:
    event = CleanupEvent.from_json(body)
    await cleaner_main(event.ids, remote_url=event.remote_url, project_url=event.raw_project_url)
