# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from unittest import TestCase
from unittest.mock import Mock, call, patch

# project
from azure_cleaner.project_url import AzdoProjectUrl
from azure_cleaner.purgers.context import PurgeContext
from azure_cleaner.purgers.devops import (
    ConnectionCache,
    DevOpsPurgeOptions,
    DevOpsPurger,
    find_project,
    make_projects,
)
from azure_cleaner.tests.common import AsyncTestCase, UnexpectedException, mock

PROJECT_URL = "https://dev.azure.com/fabrikam/DefaultCollection"
PROJECT_ID_URL = "https://dev.azure.com/fabrikam/cea8cb01-dd13-4588-b27a-55fa170e4e94"
REMOTE_URL = "https://tingle@dev.azure.com/fabrikam/DefaultCollection/_git/Fabrikam"

PROJECTS = make_projects([f"{PROJECT_URL};123456789", f"{PROJECT_ID_URL};987654321"])


class TestMakeProjects(TestCase):
    def test_valid_entries(self):
        self.assertEqual(
            PROJECTS,
            {AzdoProjectUrl.parse(PROJECT_URL): "123456789", AzdoProjectUrl.parse(PROJECT_ID_URL): "987654321"},
        )

    def test_keys_are_normalized(self):
        projects = make_projects([f"{REMOTE_URL};123456789"])
        self.assertEqual(list(map(str, projects)), [PROJECT_URL])

    @patch("azure_cleaner.purgers.devops.log")
    def test_invalid_entries_are_skipped(self, log: Mock):
        projects = make_projects(
            [PROJECT_URL, f"{PROJECT_URL};", "https://github.com/fabrikam/repo;123", f"{PROJECT_ID_URL};987654321"]
        )
        self.assertEqual(projects, {AzdoProjectUrl.parse(PROJECT_ID_URL): "987654321"})
        self.assertEqual(log.error.call_count, 3)


class TestFindProject(TestCase):
    def test_not_found(self):
        self.assertIsNone(find_project(PROJECTS, "https://dev.azure.com/fabrikam/6ce954b1-ce1f-45d1-b94d-e6bf2464ba2c"))

    def test_project_url(self):
        url, token = find_project(PROJECTS, PROJECT_URL)  # type: ignore
        self.assertEqual(str(url), PROJECT_URL)
        self.assertEqual(token, "123456789")

    def test_project_id(self):
        url, token = find_project(  # type: ignore
            PROJECTS, "https://dev.azure.com/fabrikam/_apis/projects/cea8cb01-dd13-4588-b27a-55fa170e4e94"
        )
        self.assertEqual(str(url), PROJECT_ID_URL)
        self.assertEqual(token, "987654321")

    def test_remote_urls(self):
        for remote_url in [
            "https://dev.azure.com/fabrikam/DefaultCollection/_git/Fabrikam",
            "https://tingle@dev.azure.com/fabrikam/DefaultCollection/_git/Fabrikam",
        ]:
            with self.subTest(remote_url=remote_url):
                url, token = find_project(PROJECTS, remote_url)  # type: ignore
                self.assertEqual(str(url), PROJECT_URL)
                self.assertEqual(token, "123456789")

    def test_project_url_is_tried_first(self):
        url, token = find_project(PROJECTS, PROJECT_ID_URL, REMOTE_URL)  # type: ignore
        self.assertEqual(str(url), PROJECT_ID_URL)
        self.assertEqual(token, "987654321")

    def test_remote_url_is_the_fallback(self):
        result = find_project(PROJECTS, "https://dev.azure.com/fabrikam/unknown", REMOTE_URL)
        self.assertEqual(result, (AzdoProjectUrl.parse(PROJECT_URL), "123456789"))

    def test_blank_and_invalid_urls_are_skipped(self):
        self.assertIsNone(find_project(PROJECTS, None, "", "  ", "not a url"))
        self.assertEqual(find_project(PROJECTS, "not a url", PROJECT_URL)[1], "123456789")  # type: ignore


class TestConnectionCache(TestCase):
    def setUp(self) -> None:
        connection_patch = patch("azure_cleaner.purgers.devops.Connection", side_effect=lambda **_: Mock())
        self.connection_class = connection_patch.start()
        self.addCleanup(connection_patch.stop)
        auth_patch = patch("azure_cleaner.purgers.devops.BasicAuthentication")
        self.auth_class = auth_patch.start()
        self.addCleanup(auth_patch.stop)
        time_patch = patch("azure_cleaner.purgers.devops.time", return_value=1000.0)
        self.time = time_patch.start()
        self.addCleanup(time_patch.stop)
        self.url = AzdoProjectUrl.parse(PROJECT_URL)

    def test_connection_is_created_for_organization(self):
        ConnectionCache().get(self.url, "123456789")
        self.auth_class.assert_called_once_with("", "123456789")
        self.connection_class.assert_called_once_with(
            base_url="https://dev.azure.com/fabrikam/", creds=self.auth_class.return_value
        )

    def test_connection_is_reused(self):
        cache = ConnectionCache()
        first = cache.get(self.url, "123456789")
        self.time.return_value = 1000.0 + 3599
        self.assertIs(cache.get(self.url, "123456789"), first)
        self.connection_class.assert_called_once()

    def test_connection_expires_after_an_hour(self):
        cache = ConnectionCache()
        first = cache.get(self.url, "123456789")
        self.time.return_value = 1000.0 + 3600
        self.assertIsNot(cache.get(self.url, "123456789"), first)

    def test_new_token_gets_new_connection(self):
        cache = ConnectionCache()
        first = cache.get(self.url, "123456789")
        self.assertIsNot(cache.get(self.url, "987654321"), first)
        self.assertEqual(self.connection_class.call_count, 2)

    def test_key_hides_token(self):
        key = ConnectionCache.make_key(self.url, "123456789")
        self.assertEqual(len(key), 64)
        self.assertNotIn("123456789", key)


class TestDevOpsPurger(AsyncTestCase):
    def setUp(self) -> None:
        self.log = Mock()
        self.connections = Mock(spec=ConnectionCache)
        self.client = self.connections.get.return_value.clients_v7_1.get_task_agent_client.return_value
        self.client.get_environments.return_value = [mock(id=1, name="review-apps"), mock(id=2, name="production")]
        self.environments = {
            1: mock(
                id=1,
                name="review-apps",
                resources=[mock(id=11, name="ra-23765"), mock(id=12, name="fabrikam"), mock(id=13, name="ra23765-web")],
            ),
            2: mock(id=2, name="production", resources=[]),
        }
        self.client.get_environment_by_id.side_effect = lambda project, env_id, expands: self.environments[env_id]
        self.purger = DevOpsPurger(self.connections, self.log)

    async def purge(self, dry_run: bool = False, projects=PROJECTS, **urls: str | None) -> None:
        context = PurgeContext.create([23765], dry_run)
        await self.purger.purge(context.convert(DevOpsPurgeOptions(projects=projects, **urls)))

    async def test_no_urls(self):
        await self.purge()
        self.connections.get.assert_not_called()
        self.purger.log.debug.assert_called_once_with("No Azure DevOps URLs provided, skipping")

    async def test_no_token(self):
        await self.purge(project_url="https://dev.azure.com/fabrikam/unknown", remote_url=None)
        self.connections.get.assert_not_called()
        self.purger.log.warning.assert_called_once_with(
            "Project for '%s' or '%s' is not configured or does not have a token",
            "https://dev.azure.com/fabrikam/unknown",
            None,
        )

    async def test_matching_resources_are_deleted(self):
        await self.purge(project_url=PROJECT_URL, remote_url=REMOTE_URL)

        self.connections.get.assert_called_once_with(AzdoProjectUrl.parse(PROJECT_URL), "123456789")
        self.client.get_environments.assert_called_once_with("DefaultCollection")
        self.client.get_environment_by_id.assert_has_calls(
            [
                call("DefaultCollection", 1, expands="resourceReferences"),
                call("DefaultCollection", 2, expands="resourceReferences"),
            ]
        )
        self.assertEqual(
            self.client.delete_kubernetes_resource.call_args_list,
            [call("DefaultCollection", 1, 11), call("DefaultCollection", 1, 13)],
        )
        self.purger.log.info.assert_any_call(
            "Deleting resource '%s/%s' in '%s'", "review-apps", "ra-23765", AzdoProjectUrl.parse(PROJECT_URL)
        )

    async def test_remote_url_only(self):
        await self.purge(remote_url=REMOTE_URL)
        self.connections.get.assert_called_once_with(AzdoProjectUrl.parse(PROJECT_URL), "123456789")
        self.assertEqual(self.client.delete_kubernetes_resource.call_count, 2)

    async def test_dry_run(self):
        await self.purge(dry_run=True, project_url=PROJECT_URL)

        self.client.delete_kubernetes_resource.assert_not_called()
        self.purger.log.info.assert_has_calls(
            [
                call(
                    "Deleting resource '%s/%s' in '%s' (dry run)",
                    "review-apps",
                    "ra-23765",
                    AzdoProjectUrl.parse(PROJECT_URL),
                ),
                call(
                    "Deleting resource '%s/%s' in '%s' (dry run)",
                    "review-apps",
                    "ra23765-web",
                    AzdoProjectUrl.parse(PROJECT_URL),
                ),
            ]
        )

    async def test_errors_propagate(self):
        self.client.get_environments.side_effect = UnexpectedException("unauthorized")
        with self.assertRaises(UnexpectedException):
            await self.purge(project_url=PROJECT_URL)
