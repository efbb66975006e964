# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from unittest import TestCase

# project
from azure_cleaner.purgers.context import PurgeContext


class TestPurgeContext(TestCase):
    def setUp(self) -> None:
        self.context = PurgeContext.create([23765])

    def test_create(self):
        self.assertIsNone(self.context.resource)
        self.assertEqual(self.context.possible_names, ("review-app-23765", "ra-23765", "ra23765"))
        self.assertFalse(self.context.dry_run)
        self.assertTrue(PurgeContext.create([1], dry_run=True).dry_run)

    def test_name_matches(self):
        self.assertTrue(self.context.name_matches("ra23765"))
        self.assertTrue(self.context.name_matches("bla:ra23765"))
        self.assertTrue(self.context.name_matches("ra23765:bla"))
        self.assertTrue(self.context.name_matches("bla", "ra-23765-web"))
        self.assertFalse(self.context.name_matches("bla"))
        self.assertFalse(self.context.name_matches(None, ""))
        self.assertFalse(self.context.name_matches())

    def test_convert(self):
        context = PurgeContext.create([1], dry_run=True)
        converted = context.convert({"projects": {}})
        self.assertEqual(converted.resource, {"projects": {}})
        self.assertEqual(converted.possible_names, context.possible_names)
        self.assertTrue(converted.dry_run)
        self.assertIsNone(context.resource)
