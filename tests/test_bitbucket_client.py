"""Tests for the Bitbucket client against Cloud and Server URL shapes."""

import pytest

from atlcli.bitbucket.client import BitbucketClient
from atlcli.bitbucket.endpoints import CloudEndpoints, ServerEndpoints, endpoints_for, is_cloud
from atlcli.common.errors import ConfigurationError, UnsupportedOperationError

CLOUD_URL = "https://api.bitbucket.org"
SERVER_URL = "https://bitbucket.mycorp.com"


@pytest.fixture
def cloud(service_config):
    config = service_config("bitbucket", CLOUD_URL, username="alice", api_token="app-password")
    with BitbucketClient(config) as client:
        yield client


@pytest.fixture
def server(service_config):
    with BitbucketClient(service_config("bitbucket", SERVER_URL)) as client:
        yield client


def server_page(values, start=0, limit=25, is_last=True, next_start=None):
    page = {"values": values, "size": len(values), "limit": limit, "start": start, "isLastPage": is_last}
    if next_start is not None:
        page["nextPageStart"] = next_start
    return page


class TestDeploymentDetection:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://api.bitbucket.org", True),
            ("https://API.BITBUCKET.ORG/", True),
            ("https://bitbucket.org", True),
            ("https://bitbucket.mycorp.com", False),
            ("https://git.example.com/bitbucket", False),
        ],
    )
    def test_is_cloud(self, url, expected):
        assert is_cloud(url) is expected

    def test_strategy_is_chosen_once(self, cloud, server):
        assert isinstance(cloud.endpoints, CloudEndpoints)
        assert cloud.is_cloud is True
        assert isinstance(server.endpoints, ServerEndpoints)
        assert server.is_cloud is False

    def test_page_params(self):
        assert endpoints_for(CLOUD_URL).page_params(25, 50) == {"pagelen": 25, "page": 3}
        assert endpoints_for(SERVER_URL).page_params(25, 50) == {"limit": 25, "start": 50}

    def test_cloud_start_must_be_on_a_page_boundary(self, cloud, mock_request):
        with pytest.raises(ConfigurationError, match="--start must be a multiple of --limit"):
            cloud.list_repositories("ws", limit=10, start=15)

        mock_request.assert_not_called()

    def test_server_start_is_not_restricted(self):
        assert endpoints_for(SERVER_URL).page_params(10, 15) == {"limit": 10, "start": 15}


class TestServerPipelines:
    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.get_pipeline_configuration("PROJ", "repo"),
            lambda c: c.list_pipelines("PROJ", "repo"),
            lambda c: c.get_pipeline("PROJ", "repo", "{uuid}"),
            lambda c: c.trigger_pipeline("PROJ", "repo", "main"),
            lambda c: c.stop_pipeline("PROJ", "repo", "{uuid}"),
        ],
    )
    def test_fails_without_network_call(self, server, mock_request, call):
        with pytest.raises(UnsupportedOperationError, match="only available for Bitbucket Cloud") as exc_info:
            call(server)

        assert isinstance(exc_info.value, ConfigurationError)
        mock_request.assert_not_called()


class TestRepositories:
    def test_server_repository(self, server, mock_request, respond):
        mock_request.return_value = respond(
            payload={
                "slug": "my-repo",
                "name": "My Repo",
                "scmId": "git",
                "state": "AVAILABLE",
                "forkable": True,
                "public": False,
                "project": {"key": "PROJ", "name": "Project"},
                "links": {"self": [{"href": "https://bitbucket.mycorp.com/projects/PROJ/repos/my-repo/browse"}]},
            }
        )

        repo = server.get_repository("PROJ", "my-repo")

        assert repo.slug == "my-repo"
        assert repo.scm_id == "git"
        assert repo.visibility == "private"
        assert repo.project.key == "PROJ"
        assert mock_request.call_args.args == ("GET", f"{SERVER_URL}/rest/api/1.0/projects/PROJ/repos/my-repo")

    def test_cloud_repository_list_page(self, cloud, mock_request, respond):
        mock_request.return_value = respond(
            payload={
                "values": [{"slug": "my-repo", "name": "My Repo", "is_private": True, "mainbranch": {"name": "main"}}],
                "page": 2,
                "pagelen": 10,
                "next": f"{CLOUD_URL}/2.0/repositories/ws?page=3",
            }
        )

        page = cloud.list_repositories("ws", limit=10, start=10)

        assert page.values[0].visibility == "private"
        assert page.is_last_page is False
        assert mock_request.call_args.args == ("GET", f"{CLOUD_URL}/2.0/repositories/ws")
        assert mock_request.call_args.kwargs["params"] == {"pagelen": 10, "page": 2}

    def test_list_all_pages(self, server, mock_request, respond):
        mock_request.side_effect = [
            respond(payload=server_page([{"key": "A"}], 0, 1, False, 1)),
            respond(payload=server_page([{"key": "B"}], 1, 1, True)),
        ]

        page = server.list_projects(limit=1, all_pages=True)

        assert [p.identifier for p in page.values] == ["A", "B"]
        assert page.is_last_page is True
        assert mock_request.call_count == 2


class TestBranchesAndCommits:
    def test_server_default_branch(self, server, mock_request, respond):
        mock_request.return_value = respond(
            payload={"id": "refs/heads/main", "displayId": "main", "latestCommit": "abc123", "isDefault": True}
        )

        branch = server.get_default_branch("PROJ", "repo")

        assert branch.label == "main"
        assert branch.head == "abc123"
        assert mock_request.call_args.args[1] == f"{SERVER_URL}/rest/api/1.0/projects/PROJ/repos/repo/default-branch"

    def test_cloud_default_branch_comes_from_repository(self, cloud, mock_request, respond):
        mock_request.side_effect = [
            respond(payload={"slug": "repo", "mainbranch": {"name": "develop", "type": "branch"}}),
            respond(payload={"name": "develop", "type": "branch", "target": {"hash": "fedcba"}}),
        ]

        branch = cloud.get_default_branch("ws", "repo")

        assert branch.label == "develop"
        assert branch.head == "fedcba"
        assert branch.is_default is True
        assert mock_request.call_args.args[1] == f"{CLOUD_URL}/2.0/repositories/ws/repo/refs/branches/develop"

    @pytest.mark.parametrize(
        "fixture, param",
        [("cloud", "include"), ("server", "until")],
    )
    def test_commit_branch_filter(self, request, mock_request, respond, fixture, param):
        client = request.getfixturevalue(fixture)
        mock_request.return_value = respond(payload=server_page([]))

        client.list_commits("PROJ", "repo", branch="feature/x")

        assert mock_request.call_args.kwargs["params"][param] == "feature/x"

    def test_cloud_commit(self, cloud, mock_request, respond):
        mock_request.return_value = respond(
            payload={
                "hash": "0123456789abcdef",
                "message": "Fix bug\n\nLonger text",
                "author": {"raw": "Alice <alice@example.com>", "user": {"display_name": "Alice"}},
                "date": "2024-01-02T03:04:05+00:00",
                "parents": [{"hash": "fedcba9876543210"}],
            }
        )

        commit = cloud.get_commit("ws", "repo", "0123456789abcdef")

        assert commit.commit_id == "0123456789abcdef"
        assert commit.short_id == "0123456789a"
        assert commit.summary == "Fix bug"
        assert commit.author.label == "Alice"
        assert commit.parents[0].commit_id == "fedcba9876543210"


class TestPullRequests:
    def test_state_is_upper_cased(self, server, mock_request, respond):
        mock_request.return_value = respond(payload=server_page([{"id": 1, "title": "PR"}]))

        page = server.list_pull_requests("PROJ", "repo", state="merged")

        assert page.values[0].id == 1
        assert mock_request.call_args.kwargs["params"]["state"] == "MERGED"

    def test_server_commits_use_pages_of_one_hundred(self, server, mock_request, respond):
        mock_request.side_effect = [
            respond(payload=server_page([{"id": "a"}], 0, 100, False, 100)),
            respond(payload=server_page([{"id": "b"}], 100, 100, True)),
        ]

        commits = server.get_pull_request_commits("PROJ", "repo", 7)

        assert [c.commit_id for c in commits] == ["a", "b"]
        assert [c.kwargs["params"] for c in mock_request.call_args_list] == [
            {"limit": 100, "start": 0},
            {"limit": 100, "start": 100},
        ]

    def test_server_comments_come_from_activities(self, server, mock_request, respond):
        mock_request.return_value = respond(
            payload=server_page(
                [
                    {"id": 1, "action": "OPENED"},
                    {"id": 2, "action": "COMMENTED", "comment": {"id": 10, "text": "Looks good", "author": {"name": "bob"}}},
                    {"id": 3, "action": "APPROVED"},
                ]
            )
        )

        comments = server.get_pull_request_comments("PROJ", "repo", 7)

        assert [(c.id, c.body, c.who) for c in comments] == [(10, "Looks good", "bob")]
        assert mock_request.call_args.args[1].endswith("/pull-requests/7/activities")

    def test_cloud_comments(self, cloud, mock_request, respond):
        mock_request.return_value = respond(
            payload={"values": [{"id": 5, "content": {"raw": "Nice"}, "user": {"display_name": "Carol"}}], "page": 1}
        )

        comments = cloud.get_pull_request_comments("ws", "repo", 7)

        assert [(c.body, c.who) for c in comments] == [("Nice", "Carol")]

    @pytest.mark.parametrize(
        "fixture, path, body",
        [
            ("server", "/rest/api/1.0/projects/P/repos/r/pull-requests/7/comments", {"text": "Hi"}),
            ("cloud", "/2.0/repositories/P/r/pullrequests/7/comments", {"content": {"raw": "Hi"}}),
        ],
    )
    def test_add_comment_body(self, request, mock_request, respond, fixture, path, body):
        client = request.getfixturevalue(fixture)
        mock_request.return_value = respond(201, payload={"id": 99})

        comment = client.add_pull_request_comment("P", "r", 7, "Hi")

        assert comment.id == 99
        assert mock_request.call_args.args[1] == client.base_url + path
        assert mock_request.call_args.kwargs["json"] == body

    def test_server_diff_renders_as_unified_text(self, server, mock_request, respond):
        mock_request.return_value = respond(
            payload={
                "fromHash": "a",
                "toHash": "b",
                "diffs": [
                    {
                        "source": {"toString": "app.py"},
                        "destination": {"toString": "app.py"},
                        "hunks": [
                            {
                                "sourceLine": 1,
                                "sourceSpan": 2,
                                "destinationLine": 1,
                                "destinationSpan": 2,
                                "segments": [
                                    {"type": "CONTEXT", "lines": [{"source": 1, "destination": 1, "line": "import os"}]},
                                    {"type": "REMOVED", "lines": [{"source": 2, "destination": 2, "line": "x = 1"}]},
                                    {"type": "ADDED", "lines": [{"source": 2, "destination": 2, "line": "x = 2"}]},
                                ],
                            }
                        ],
                    }
                ],
            }
        )

        diff = server.get_pull_request_diff("PROJ", "repo", 7)

        assert diff.as_text() == "\n".join(
            ["--- a/app.py", "+++ b/app.py", "@@ -1,2 +1,2 @@", " import os", "-x = 1", "+x = 2"]
        )

    def test_cloud_diff_is_raw_text(self, cloud, mock_request, respond):
        mock_request.return_value = respond(text="diff --git a/x b/x\n")

        diff = cloud.get_pull_request_diff("ws", "repo", 7)

        assert diff.as_text() == "diff --git a/x b/x\n"


class TestSettingsAndStatus:
    def test_server_build_status_path(self, server, mock_request, respond):
        mock_request.return_value = respond(
            payload=server_page([{"state": "SUCCESSFUL", "key": "CI", "dateAdded": 1700000000000}])
        )

        page = server.get_build_statuses("PROJ", "repo", "abc")

        assert page.values[0].state == "SUCCESSFUL"
        assert page.values[0].added.startswith("2023-11-14")
        assert mock_request.call_args.args[1] == f"{SERVER_URL}/rest/build-status/1.0/commits/abc"

    @pytest.mark.parametrize(
        "fixture, path",
        [
            ("server", "/rest/branch-permissions/2.0/projects/P/repos/r/restrictions"),
            ("cloud", "/2.0/repositories/P/r/branch-restrictions"),
        ],
    )
    def test_branch_restriction_paths(self, request, mock_request, respond, fixture, path):
        client = request.getfixturevalue(fixture)
        mock_request.return_value = respond(payload=server_page([]))

        client.get_branch_restrictions("P", "r")

        assert mock_request.call_args.args[1] == client.base_url + path

    @pytest.mark.parametrize(
        "fixture, path",
        [
            ("server", "/rest/api/1.0/projects/P/repos/r/webhooks"),
            ("cloud", "/2.0/repositories/P/r/hooks"),
        ],
    )
    def test_webhook_paths(self, request, mock_request, respond, fixture, path):
        client = request.getfixturevalue(fixture)
        mock_request.return_value = respond(payload=server_page([{"id": 1, "url": "https://ci", "events": ["repo:push"]}]))

        page = client.get_webhooks("P", "r")

        assert page.values[0].events == ["repo:push"]
        assert mock_request.call_args.args[1] == client.base_url + path


class TestCloudPipelines:
    def test_trigger_custom_pipeline_with_variables(self, cloud, mock_request, respond):
        mock_request.return_value = respond(
            201, payload={"uuid": "{p-1}", "build_number": 12, "state": {"name": "PENDING"}}
        )

        pipeline = cloud.trigger_pipeline("ws", "repo", "main", custom="deploy", variables={"ENV": "staging"})

        assert pipeline.build_number == 12
        assert pipeline.status == "PENDING"
        assert mock_request.call_args.args == ("POST", f"{CLOUD_URL}/2.0/repositories/ws/repo/pipelines/")
        assert mock_request.call_args.kwargs["json"] == {
            "target": {
                "type": "pipeline_ref_target",
                "ref_type": "branch",
                "ref_name": "main",
                "selector": {"type": "custom", "pattern": "deploy"},
            },
            "variables": [{"key": "ENV", "value": "staging", "secured": False}],
        }

    def test_list_pipelines_sorted_newest_first(self, cloud, mock_request, respond):
        mock_request.return_value = respond(
            payload={
                "values": [{"uuid": "{p}", "state": {"name": "COMPLETED", "result": {"name": "SUCCESSFUL"}}}],
                "page": 1,
                "pagelen": 25,
            }
        )

        page = cloud.list_pipelines("ws", "repo")

        assert page.values[0].status == "COMPLETED (SUCCESSFUL)"
        assert mock_request.call_args.kwargs["params"] == {"sort": "-created_on", "pagelen": 25, "page": 1}

    def test_stop_pipeline(self, cloud, mock_request, respond):
        mock_request.return_value = respond(204)

        cloud.stop_pipeline("ws", "repo", "{p-1}")

        assert mock_request.call_args.args == (
            "POST",
            f"{CLOUD_URL}/2.0/repositories/ws/repo/pipelines/%7Bp-1%7D/stopPipeline",
        )
