"""Tests for the typed entities and their HTTP operations."""

import json
import urllib.parse

import pytest

from forge_client.core.errors import ForgeError, HttpError, NotFoundError
from forge_client.core.requester import Requester
from forge_client.models.issue import Issue, IssueLike, IssueState
from forge_client.models.pull_request import MergeMethod, PullRequest
from forge_client.models.reaction import REACTIONS_PREVIEW, ReactionContent
from forge_client.models.release import Release
from forge_client.models.repository import LICENSES_PREVIEW, RAW_MEDIA_TYPE, Repository
from forge_client.models.user import Team, User
from tests.conftest import API_URL, pr_json, repo_json

REPO_URL = f"{API_URL}/repos/octo/hello"


def query(url: str) -> dict[str, list[str]]:
    return urllib.parse.parse_qs(urllib.parse.urlparse(url).query)


@pytest.fixture
def repo(forge, connector) -> Repository:
    connector.add_json(repo_json())
    repo = forge.get_repository("octo/hello")
    connector.requests.clear()
    return repo


@pytest.fixture
def offline_repo(offline_forge) -> Repository:
    return offline_forge.parse(json.dumps(repo_json(description="offline copy")), Repository)


# =============================================================================
# Repository
# =============================================================================


class TestRepository:
    def test_pull_requests_are_paged_and_wrapped(self, repo, connector):
        page2 = f"{REPO_URL}/pulls?state=open&per_page=30&page=2"
        connector.add_json([pr_json(1), pr_json(2)], headers={"Link": f'<{page2}>; rel="next"'})
        connector.add_json([pr_json(3)])

        prs = repo.list_pull_requests(IssueState.OPEN).to_list()

        assert [pr.number for pr in prs] == [1, 2, 3]
        assert connector.requests[0].url == f"{REPO_URL}/pulls?state=open&per_page=30"
        assert connector.requests[1].url == page2
        for pr in prs:
            assert pr.repository is repo
            assert pr.root is repo.root
            assert pr.head.repo.root is repo.root

    def test_missing_license_is_none(self, repo, connector):
        connector.add_json({"message": "Not Found"}, status=404)
        assert repo.get_license() is None
        assert connector.last.url == f"{REPO_URL}/license"
        assert connector.last.headers["Accept"] == LICENSES_PREVIEW

    def test_license_is_unwrapped_from_content(self, repo, connector):
        connector.add_json({"name": "LICENSE", "license": {"key": "mit", "name": "MIT License"}})
        assert repo.get_license().key == "mit"

    def test_missing_release_is_none(self, repo, connector):
        connector.add_json({"message": "Not Found"}, status=404)
        assert repo.get_release_by_tag_name("v9") is None
        assert connector.last.url == f"{REPO_URL}/releases/tags/v9"

    def test_populate_loads_the_full_record_once(self, forge, connector):
        partial = forge.parse(json.dumps(repo_json()), Repository)
        connector.add_json(repo_json(subscribers_count=42))
        assert partial.get_subscribers_count() == 42
        assert partial.get_subscribers_count() == 42
        assert len(connector.requests) == 1
        assert connector.last.url == REPO_URL

    def test_populate_without_url_uses_the_repository_route(self, forge, connector):
        partial = forge.parse(json.dumps(repo_json(url=None)), Repository)
        connector.add_json(repo_json(subscribers_count=3))
        assert partial.get_subscribers_count() == 3
        assert connector.last.url == REPO_URL

    def test_get_owner_goes_through_the_user_cache(self, repo, forge, connector):
        connector.add_json({"login": "octo", "name": "Octo"})
        owner = repo.get_owner()
        assert owner is forge.get_user("octo")
        assert owner.name == "Octo"
        assert len(connector.requests) == 1

    def test_settings_patch_the_repository(self, repo, connector):
        connector.add_json(repo_json())
        repo.set_description("New")
        assert connector.last.method == "PATCH"
        assert connector.last.url == REPO_URL
        assert connector.last.json() == {"name": "hello", "description": "New"}
        assert repo.description == "New"

    def test_delete_not_found_mentions_scope(self, repo, connector):
        connector.add_json({"message": "Not Found"}, status=404)
        with pytest.raises(NotFoundError, match="delete_repo"):
            repo.delete()

    def test_branches_are_sorted_by_name(self, repo, connector):
        connector.add_json([{"name": "main", "commit": {"sha": "a"}}, {"name": "dev", "commit": {"sha": "b"}}])
        branches = repo.get_branches()
        assert list(branches) == ["dev", "main"]
        assert branches["main"].get_sha() == "a"
        assert branches["dev"].repository is repo

    def test_read_blob_streams_raw_bytes(self, repo, connector):
        connector.add(200, b"\x00\x01binary")
        assert repo.read_blob("abc") == b"\x00\x01binary"
        assert connector.last.headers["Accept"] == RAW_MEDIA_TYPE
        assert connector.last.url == f"{REPO_URL}/git/blobs/abc"

    def test_has_assignee_uses_status_code(self, repo, connector):
        connector.add(204).add(404)
        assert repo.has_assignee(User(login="a"))
        assert not repo.has_assignee(User(login="b"))

    def test_fork_waits_for_the_new_repository(self, repo, connector):
        connector.add_json(repo_json("me", "hello"), status=202)
        connector.add_json({"login": "me"})
        connector.add_json(repo_json("me", "hello"))
        fork = repo.fork()
        assert fork.full_name == "me/hello"
        assert [r.url for r in connector.requests] == [
            f"{REPO_URL}/forks",
            f"{API_URL}/user",
            f"{API_URL}/repos/me/hello",
        ]

    def test_equality_by_owner_and_name(self, forge):
        a = forge.parse(json.dumps(repo_json(description="a")), Repository)
        b = forge.parse(json.dumps(repo_json(description="b")), Repository)
        assert a == b
        assert len({a, b}) == 1


class TestPostCommitHooks:
    HOOKS = [
        {"id": 1, "name": "web", "config": {"url": "https://ci.example/hook"}},
        {"id": 2, "name": "email", "config": {"address": "dev@example.com"}},
    ]

    def test_lists_web_hook_urls(self, repo, connector):
        connector.add_json(self.HOOKS).add_json(self.HOOKS)
        assert "https://ci.example/hook" in repo.post_commit_hooks
        assert set(repo.post_commit_hooks) == {"https://ci.example/hook"}

    def test_add_creates_a_web_hook(self, repo, connector):
        connector.add_json({"id": 3, "name": "web", "config": {"url": "https://new"}})
        repo.post_commit_hooks.add("https://new")
        assert connector.last.method == "POST"
        assert connector.last.url == f"{REPO_URL}/hooks"
        assert connector.last.json() == {"name": "web", "config": {"url": "https://new"}, "active": True}

    def test_discard_deletes_the_matching_hook(self, repo, connector):
        connector.add_json(self.HOOKS).add(204)
        repo.post_commit_hooks.discard("https://ci.example/hook")
        assert connector.last.method == "DELETE"
        assert connector.last.url == f"{REPO_URL}/hooks/1"

    def test_failures_are_wrapped(self, repo, connector):
        connector.add(500, b'{"message": "boom"}')
        with pytest.raises(ForgeError) as exc:
            len(repo.post_commit_hooks)
        assert isinstance(exc.value.__cause__, HttpError)


# =============================================================================
# Pull requests & issues
# =============================================================================


class TestPullRequest:
    def test_populate_happens_once(self, repo, connector):
        connector.add_json([pr_json(7)])
        pr = repo.list_pull_requests().to_list()[0]
        connector.add_json(pr_json(7, mergeable=True, mergeable_state="clean", additions=10))

        assert pr.get_mergeable() is True
        assert pr.get_additions() == 10
        assert pr.get_mergeable_state() == "clean"
        assert len(connector.requests) == 2
        assert connector.last.url == f"{REPO_URL}/pulls/7"
        assert pr.repository is repo

    def test_populate_without_url_uses_the_pull_route(self, repo, connector):
        connector.add_json([pr_json(8, url=None)])
        pr = repo.list_pull_requests().to_list()[0]
        connector.add_json(pr_json(8, mergeable_state="dirty"))
        assert pr.get_mergeable_state() == "dirty"
        assert connector.last.url == f"{REPO_URL}/pulls/8"

    def test_merge(self, repo, connector):
        connector.add_json(pr_json(7, mergeable_state="clean"))
        pr = repo.get_pull_request(7)
        connector.add_json({"merged": True})
        pr.merge("Ship it", method=MergeMethod.SQUASH)
        assert connector.last.method == "PUT"
        assert connector.last.url == f"{REPO_URL}/pulls/7/merge"
        assert connector.last.json() == {"commit_message": "Ship it", "merge_method": "squash"}

    def test_labels_come_from_the_issue_view(self, repo, connector):
        connector.add_json(pr_json(7, mergeable_state="clean"))
        pr = repo.get_pull_request(7)
        connector.add_json({"number": 7, "labels": [{"name": "bug", "color": "f00"}]})
        assert [label.name for label in pr.get_labels()] == ["bug"]
        assert [label.name for label in pr.get_labels()] == ["bug"]
        assert connector.last.url == f"{REPO_URL}/issues/7"
        assert len(connector.requests) == 2

    def test_close_patches_the_pull(self, repo, connector):
        connector.add_json(pr_json(7, mergeable_state="clean"))
        pr = repo.get_pull_request(7)
        connector.add_json({})
        pr.close()
        assert connector.last.url == f"{REPO_URL}/pulls/7"
        assert connector.last.json() == {"state": "closed"}
        assert pr.state is IssueState.CLOSED

    def test_issue_and_pull_request_share_the_issue_capabilities(self):
        for cls in (Issue, PullRequest):
            for name in ("get_comments", "get_labels", "close", "lock"):
                assert callable(getattr(cls, name))
        assert IssueLike.__name__ == "IssueLike"


class TestIssue:
    def test_create_issue(self, repo, connector):
        connector.add_json({"number": 5, "title": "Crash", "state": "open", "labels": [{"name": "bug"}]})
        issue = repo.create_issue("Crash").body("It crashed").label("bug").create()
        assert connector.last.url == f"{REPO_URL}/issues"
        assert connector.last.json() == {"title": "Crash", "body": "It crashed", "labels": ["bug"], "assignees": []}
        assert issue.state is IssueState.OPEN
        assert issue.repository is repo
        assert issue.labels[0].repository is repo

    def test_close_and_comment(self, repo, connector):
        connector.add_json({"number": 5, "state": "open"})
        issue = repo.get_issue(5)
        connector.add_json({}).add_json({"id": 9, "body": "done"})
        issue.close()
        comment = issue.comment("done")
        assert connector.requests[1].json() == {"state": "closed"}
        assert connector.last.url == f"{REPO_URL}/issues/5/comments"
        assert comment.issue is issue
        assert issue.state is IssueState.CLOSED

    def test_reaction(self, repo, connector):
        connector.add_json({"number": 5})
        issue = repo.get_issue(5)
        connector.add_json({"id": 1, "content": "+1", "user": {"login": "me"}})
        reaction = issue.create_reaction(ReactionContent.PLUS_ONE)
        assert connector.last.url == f"{REPO_URL}/issues/5/reactions"
        assert connector.last.headers["Accept"] == REACTIONS_PREVIEW
        assert connector.last.json() == {"content": "+1"}
        assert reaction.content is ReactionContent.PLUS_ONE


# =============================================================================
# Offline short-circuit
# =============================================================================


class TestOffline:
    def test_populate_and_owner_use_decoded_state(self, offline_repo):
        offline_repo.populate()
        assert offline_repo.get_subscribers_count() == 0
        owner = offline_repo.get_owner()
        assert owner.login == "octo"
        assert owner.root is offline_repo.root

    def test_mutators_do_nothing(self, offline_repo):
        assert offline_repo.set_description("changed") is None
        assert offline_repo.description == "offline copy"
        assert offline_repo.create_pull_request("t", "head", "base") is None
        assert offline_repo.fork() is None

    def test_pull_request_getters_do_not_populate(self, offline_forge):
        pr = offline_forge.parse(json.dumps(pr_json(3, labels=[{"name": "bug"}])), PullRequest)
        assert pr.is_merged() is False
        assert pr.get_mergeable() is None
        assert pr.close() is None
        assert pr.state is IssueState.OPEN
        assert [label.name for label in pr.get_labels()] == ["bug"]

    def test_team_membership_changes_are_skipped(self, offline_forge):
        team = offline_forge.parse('{"id": 4, "name": "core"}', Team)
        assert team.add_member(User(login="x")) is None

    def test_release_parses_without_a_repository(self, offline_forge):
        release = offline_forge.parse('{"id": 1, "tag_name": "v1", "assets": [{"id": 2, "name": "a.zip"}]}', Release)
        assert release.root is offline_forge
        assert release.assets[0].release is release
        assert release.delete() is None

    @pytest.fixture
    def dispatched(self, monkeypatch) -> list:
        attempts = []

        def record(requester, request, *args, **kwargs):
            attempts.append(request)
            raise AssertionError(f"Unexpected {request.method} {request.url}")

        monkeypatch.setattr(Requester, "_send", record)
        return attempts

    def test_issue_builder_creates_nothing(self, offline_repo, dispatched):
        assert offline_repo.create_issue("Crash").body("stack trace").label("bug").create() is None
        assert dispatched == []

    def test_release_builder_creates_nothing(self, offline_repo, dispatched):
        assert offline_repo.create_release("v1.0").name("1.0").create() is None
        assert dispatched == []

    def test_deployment_builder_creates_nothing(self, offline_repo, dispatched):
        assert offline_repo.create_deployment("main").environment("staging").create() is None
        assert dispatched == []

    def test_repository_builder_creates_nothing(self, offline_forge, dispatched):
        assert offline_forge.create_repository("demo").private(True).create() is None
        assert dispatched == []

    def test_post_commit_hook_changes_are_skipped(self, offline_repo, dispatched):
        offline_repo.post_commit_hooks.add("https://ci.example/hook")
        offline_repo.post_commit_hooks.discard("https://ci.example/hook")
        assert dispatched == []


# =============================================================================
# Search & notifications
# =============================================================================


class TestSearch:
    def test_repository_search_unwraps_items(self, forge, connector):
        connector.add_json(
            {"total_count": 2, "incomplete_results": False, "items": [repo_json("a", "one"), repo_json("b", "two")]}
        )
        results = forge.search_repositories().q("forge").language("python").sort("stars").list()
        repos = results.to_list()

        assert [r.full_name for r in repos] == ["a/one", "b/two"]
        assert all(r.root is forge for r in repos)
        assert results.total_count == 2
        params = query(connector.last.url)
        assert urllib.parse.urlparse(connector.last.url).path == "/search/repositories"
        assert params["q"] == ["forge language:python"]
        assert params["sort"] == ["stars"]

    def test_builder_can_be_listed_again(self, forge, connector):
        connector.add_json({"total_count": 0, "items": []}).add_json({"total_count": 0, "items": []})
        builder = forge.search_repositories().q("forge")
        builder.list().to_list()
        builder.list().to_list()
        paths = [urllib.parse.urlparse(r.url).path for r in connector.requests]
        assert paths == ["/search/repositories", "/search/repositories"]
        assert query(connector.last.url)["q"] == ["forge"]

    def test_total_count_fetches_the_first_page(self, forge, connector):
        connector.add_json({"total_count": 120, "items": [{"login": "x"}]})
        results = forge.search_users().q("x").list()
        assert results.get_total_count() == 120
        assert query(connector.last.url)["per_page"] == ["1"]

    def test_search_does_not_touch_the_rate_limit_snapshot(self, forge, connector):
        connector.add_json(
            {"total_count": 0, "items": []},
            headers={"X-RateLimit-Limit": "30", "X-RateLimit-Remaining": "29", "X-RateLimit-Reset": "4102444800"},
        )
        forge.search_issues().q("bug").is_open().list().to_list()
        assert forge.last_rate_limit() is None


class TestNotifications:
    def test_stream_filters_and_wraps_threads(self, forge, connector):
        connector.add_json(
            [{"id": "1", "unread": True, "subject": {"title": "Fix it", "type": "Issue"}, "repository": repo_json()}]
        )
        threads = list(forge.list_notifications().read(True))
        params = query(connector.last.url)
        assert params["all"] == ["true"]
        assert params["participating"] == ["false"]
        assert threads[0].get_title() == "Fix it"
        assert threads[0].repository.root is forge

    def test_mark_as_read(self, forge, connector):
        connector.add(205)
        forge.list_notifications().mark_as_read()
        assert connector.last.method == "PUT"
        assert connector.last.url == f"{API_URL}/notifications"
