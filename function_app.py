# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from json import dumps

# 3p
from azure.functions import AuthLevel, FunctionApp, HttpRequest, HttpResponse, QueueMessage

# project
from azure_cleaner.cleaner import configure_logging
from azure_cleaner.env import STORAGE_CONNECTION_SETTING, get_cleanup_queue_name
from azure_cleaner.webhook import handle_cleanup_message, handle_webhook

configure_logging()

app = FunctionApp(http_auth_level=AuthLevel.ANONYMOUS)


@app.function_name(name="webhooks_azure")
@app.route(route="webhooks/azure", methods=["POST"])
async def webhooks_azure(req: HttpRequest) -> HttpResponse:
    return await handle_webhook(req)


@app.function_name(name="cleanup")
@app.queue_trigger(arg_name="msg", queue_name=get_cleanup_queue_name(), connection=STORAGE_CONNECTION_SETTING)
async def cleanup(msg: QueueMessage) -> None:
    await handle_cleanup_message(msg.get_body().decode())


@app.function_name(name="health")
@app.route(route="health", methods=["GET"])
def health(req: HttpRequest) -> HttpResponse:
    return HttpResponse(dumps({"status": "healthy"}), mimetype="application/json")
