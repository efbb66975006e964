# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger

# 3p
from azure.identity.aio import DefaultAzureCredential
from azure.mgmt.msi.aio import ManagedServiceIdentityClient

# project
from azure_cleaner.purgers.rules import KindPurger, Rule, resource_path


class UserAssignedIdentitiesPurger(KindPurger):
    NAME = "user-assigned identities"

    def __init__(self, log: Logger, cred: DefaultAzureCredential, subscription_id: str) -> None:
        self.client = ManagedServiceIdentityClient(cred, subscription_id)
        super().__init__(log, self.client)
        credentials = Rule(
            "federated credential",
            list_items=lambda identity: self.client.federated_identity_credentials.list(*resource_path(identity)),
            delete=lambda credential: self.client.federated_identity_credentials.delete(*resource_path(credential)),
        )
        self.rules = (
            Rule(
                "user-assigned identity",
                list_items=lambda _: self.client.user_assigned_identities.list_by_subscription(),
                delete=lambda identity: self.client.user_assigned_identities.delete(*resource_path(identity)),
                children=(credentials,),
            ),
        )
