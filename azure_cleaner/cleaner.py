# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import create_task, gather
from collections.abc import Iterable, Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import ERROR, Handler, LogRecord, basicConfig, getLogger
from os import environ
from time import time
from traceback import format_exception
from types import TracebackType
from typing import Self
from uuid import uuid4

# 3p
from azure.identity.aio import DefaultAzureCredential
from datadog_api_client import AsyncApiClient, Configuration
from datadog_api_client.v2.api.logs_api import LogsApi
from datadog_api_client.v2.api.metrics_api import MetricsApi
from datadog_api_client.v2.model.http_log import HTTPLog
from datadog_api_client.v2.model.http_log_item import HTTPLogItem
from datadog_api_client.v2.model.metric_payload import MetricPayload
from datadog_api_client.v2.model.metric_point import MetricPoint
from datadog_api_client.v2.model.metric_series import MetricSeries

# project
from azure_cleaner.common import CLEANER_METRIC_PREFIX, now
from azure_cleaner.env import (
    AZDO_PROJECTS_SETTING,
    DD_API_KEY_SETTING,
    DD_TELEMETRY_SETTING,
    LOG_LEVEL_SETTING,
    SUBSCRIPTIONS_SETTING,
    get_string_list_option,
    is_truthy,
)
from azure_cleaner.project_url import AzdoProjectUrl
from azure_cleaner.purgers.azure_resources import AzureResourcesPurgeOptions, AzureResourcesPurger, PurgeOptions
from azure_cleaner.purgers.context import PurgeContext
from azure_cleaner.purgers.devops import ConnectionCache, DevOpsPurgeOptions, DevOpsPurger, make_projects

log = getLogger(__name__)

# silence azure logging except for errors
getLogger("azure").setLevel(ERROR)

CLEANER_NAME = "azure_cleaner"
LOG_LEVELS = {"ERROR", "WARN", "WARNING", "INFO", "DEBUG"}
IGNORED_LOG_EXTRAS = {"created", "relativeCreated", "thread", "args", "msg", "message"}


def get_error_telemetry(
    exc_info: tuple[type[BaseException], BaseException, TracebackType | None] | tuple[None, None, None] | None,
) -> dict[str, str]:
    telemetry = {}
    if not exc_info:
        return telemetry
    exc_type, exc, tb = exc_info
    if exc_type:
        telemetry["exception"] = exc_type.__name__
    if exc_type or exc or tb:
        telemetry["exc_info"] = "".join(format_exception(exc_type, value=exc, tb=tb, limit=20))
    return telemetry


class ListHandler(Handler):
    """A logging handler that appends log messages to a list"""

    def __init__(self, logs: list[LogRecord]):
        super().__init__()
        self.log_list = logs

    def emit(self, record: LogRecord) -> None:
        record.asctime = datetime.now(UTC).isoformat()
        self.log_list.append(record)


@dataclass(frozen=True)
class CleanerOptions:
    projects: Mapping[AzdoProjectUrl, str] = field(default_factory=dict)
    subscriptions: tuple[str, ...] = ()
    purge: PurgeOptions = field(default_factory=PurgeOptions)

    @classmethod
    def from_env(cls) -> Self:
        return cls(
            projects=make_projects(get_string_list_option(AZDO_PROJECTS_SETTING)),
            subscriptions=tuple(get_string_list_option(SUBSCRIPTIONS_SETTING)),
            purge=PurgeOptions.from_env(),
        )


class AzureCleaner(AbstractAsyncContextManager["AzureCleaner"]):
    """Cleans up the review apps of closed pull requests, in Azure DevOps and then in Azure"""

    NAME = CLEANER_NAME

    def __init__(self, options: CleanerOptions | None = None, connections: ConnectionCache | None = None) -> None:
        self.options = options or CleanerOptions.from_env()
        self.credential = DefaultAzureCredential()
        self.log = log.getChild(self.__class__.__name__)
        self.devops_purger = DevOpsPurger(connections, self.log)
        self.azure_purger = AzureResourcesPurger(self.credential, self.log)

        # Telemetry Logic
        self.start_time = time()
        self.execution_id = str(uuid4())
        self.tags = ["service:azure-cleaner", f"task:{self.NAME}"]
        self.telemetry_enabled = bool(is_truthy(DD_TELEMETRY_SETTING) and environ.get(DD_API_KEY_SETTING))
        self._logs: list[LogRecord] = []
        self._log_handler = ListHandler(self._logs)
        self._datadog_client = AsyncApiClient(Configuration())
        self._logs_client = LogsApi(self._datadog_client)
        self._metrics_client = MetricsApi(self._datadog_client)
        if self.telemetry_enabled:
            log.info("Telemetry enabled, will submit logs for %s", self.NAME)
            self.log.addHandler(self._log_handler)

    async def __aenter__(self) -> Self:
        await gather(self.credential.__aenter__(), self._datadog_client.__aenter__())
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        submit_telemetry = create_task(self.submit_telemetry())
        await self.credential.__aexit__(exc_type, exc_value, traceback)
        try:
            await submit_telemetry
        except Exception:
            log.exception("Failed to submit telemetry")
        finally:
            self.log.removeHandler(self._log_handler)
        await self._datadog_client.__aexit__(exc_type, exc_value, traceback)

    async def handle(
        self,
        ids: Iterable[int],
        remote_url: str | None = None,
        project_url: str | None = None,
        subscriptions: Iterable[str] | None = None,
        projects: Mapping[AzdoProjectUrl, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        ids = list(ids)
        context = PurgeContext.create(ids, dry_run)
        self.log.info("Cleaning up review apps for pull requests %s", ", ".join(map(str, ids)))
        if dry_run:
            self.log.info("Dry run enabled, no changes will be made")

        devops_options = DevOpsPurgeOptions(
            projects=self.options.projects if projects is None else projects,
            project_url=project_url,
            remote_url=remote_url,
        )
        await self.devops_purger.purge(context.convert(devops_options))

        azure_options = AzureResourcesPurgeOptions(
            subscriptions=self.options.subscriptions if subscriptions is None else tuple(subscriptions),
            options=self.options.purge,
        )
        await self.azure_purger.purge(context.convert(azure_options))

    async def submit_telemetry(self) -> None:
        if not self.telemetry_enabled or not self._logs:
            return
        dd_logs = [
            HTTPLogItem(
                **{
                    **{k: str(v) for k, v in record.__dict__.items() if k.lower() not in IGNORED_LOG_EXTRAS},
                    **{
                        "message": record.getMessage(),
                        "ddsource": "azure",
                        "service": "azure-cleaner",
                        "time": record.asctime,
                        "level": record.levelname,
                        "execution_id": self.execution_id,
                    },
                    **get_error_telemetry(record.exc_info),
                }
            )
            for record in self._logs
        ]
        self._logs.clear()
        dd_metric = MetricSeries(
            metric=CLEANER_METRIC_PREFIX + "runtime_seconds",
            points=[MetricPoint(timestamp=int(self.start_time), value=time() - self.start_time)],
            tags=self.tags,
        )
        await gather(
            self._logs_client.submit_log(HTTPLog(value=dd_logs), ddtags=",".join(self.tags)),  # type: ignore
            self._metrics_client.submit_metrics(MetricPayload(series=[dd_metric])),  # type: ignore
        )


def configure_logging() -> str:
    level = environ.get(LOG_LEVEL_SETTING, "INFO").upper()
    if level not in LOG_LEVELS:
        level = "INFO"
    basicConfig()
    getLogger(CLEANER_NAME).setLevel(level)
    return level


async def cleaner_main(
    ids: Iterable[int],
    remote_url: str | None = None,
    project_url: str | None = None,
    subscriptions: Iterable[str] | None = None,
    projects: Mapping[AzdoProjectUrl, str] | None = None,
    dry_run: bool = False,
) -> None:
    level = configure_logging()
    log.info("Started %s at %s (log level %s)", CLEANER_NAME, now(), level)
    async with AzureCleaner() as cleaner:
        await cleaner.handle(
            ids,
            remote_url=remote_url,
            project_url=project_url,
            subscriptions=subscriptions,
            projects=projects,
            dry_run=dry_run,
        )
    log.info("%s finished at %s", CLEANER_NAME, now())
