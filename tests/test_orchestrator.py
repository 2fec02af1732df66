#!/usr/bin/env python3
# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
End-to-end tests for LandingOrchestrator against a local bare repository
and the in-memory pull request API.
"""

from unittest.mock import Mock, patch

import pygit2
import pytest

from prlander.backends.memory import InMemoryPullRequestAPI
from prlander.classes import CommitStatus, LandingStage
from prlander.errors import (
    CloneError,
    GitHubAPIError,
    InputValidationError,
    MutationError,
    NotMergeableError,
    PRCreateError,
    StatusFailedError,
    StatusTimeoutError,
)
from prlander.orchestrator import LandingOrchestrator
from prlander.utils.logging import LandingObserver
from prlander.workspace import Workspace

ALL_GREEN = [CommitStatus(context='ci', state='success'), CommitStatus(context='deploy', state='success')]


@pytest.fixture
def head_resolver(bare_repo):
    def resolve(branch):
        repository = pygit2.Repository(bare_repo.path)
        return str(repository.references[f'refs/heads/{branch}'].target)

    return resolve


@pytest.fixture
def observer():
    return Mock(spec=LandingObserver)


@pytest.fixture
def make_orchestrator(credentials, local_cloner, workspace_root, observer):
    def make(api, repo_name='octocat/Hello-World', timeout=5):
        return LandingOrchestrator(
            repo_name,
            credentials,
            api=api,
            cloner=local_cloner,
            observer=observer,
            workspace_root=str(workspace_root),
            poll_interval=0.01,
            status_timeout=timeout,
        )

    return make


def write_file(author):
    def mutate(workdir):
        (workdir / 'deps.lock').write_text('requests==2.32.3\n')
        return 'Bump dependencies', author

    return mutate


def run(orchestrator, author):
    return orchestrator.run('bump-deps', 'main', 'ci', 'deploy', write_file(author), title='Bump deps')


class TestSuccessfulLanding:
    def test_full_run_sets_head_and_merge_sha(self, make_orchestrator, head_resolver, author, branch_tip, workspace_root):
        api = InMemoryPullRequestAPI(default_statuses=ALL_GREEN, head_resolver=head_resolver)

        result = run(make_orchestrator(api), author)

        pr = result.pull_request
        assert pr.number == 1
        assert pr.head_sha == str(branch_tip('bump-deps').id)
        assert pr.head_sha == result.commit_sha
        assert pr.merge_sha is not None
        assert result.teardown_error is None
        assert result.stages == list(LandingStage)
        assert list(workspace_root.iterdir()) == []

    def test_waits_on_head_then_merge_commit(self, make_orchestrator, head_resolver, author):
        api = InMemoryPullRequestAPI(default_statuses=ALL_GREEN, head_resolver=head_resolver)

        result = run(make_orchestrator(api), author)

        assert api.status_requests[0] == result.pull_request.head_sha
        assert api.status_requests[-1] == result.pull_request.merge_sha
        assert api.pull_requests[1]['title'] == 'Bump deps'

    def test_observer_notified_in_order(self, make_orchestrator, head_resolver, author, observer):
        api = InMemoryPullRequestAPI(default_statuses=ALL_GREEN, head_resolver=head_resolver)

        result = run(make_orchestrator(api), author)

        stages = [c.args[0] for c in observer.on_stage.call_args_list]
        assert stages == list(LandingStage)
        observer.on_head_sha.assert_called_once_with(result.pull_request.head_sha)
        waits = [c.args for c in observer.on_waiting_for_status.call_args_list]
        assert waits == [(result.pull_request.head_sha, 'ci'), (result.pull_request.merge_sha, 'deploy')]
        observer.on_failure.assert_not_called()


class TestFailedLanding:
    def test_invalid_repo_name_fails_before_any_work(self, make_orchestrator, workspace_root):
        api = InMemoryPullRequestAPI()
        with pytest.raises(InputValidationError):
            make_orchestrator(api, repo_name='octocat')
        assert list(workspace_root.iterdir()) == []

    def test_clone_failure_cleans_up(self, make_orchestrator, author, workspace_root):
        api = InMemoryPullRequestAPI(default_statuses=ALL_GREEN)

        with pytest.raises(CloneError):
            run(make_orchestrator(api, repo_name='octocat/missing'), author)

        assert list(workspace_root.iterdir()) == []
        assert api.pull_requests == {}

    def test_mutation_failure_stops_before_pr(self, make_orchestrator, author, workspace_root, branch_tip, observer):
        api = InMemoryPullRequestAPI(default_statuses=ALL_GREEN)

        def mutate(workdir):
            raise RuntimeError('generator crashed')

        with pytest.raises(MutationError):
            make_orchestrator(api).run('bump-deps', 'main', 'ci', 'deploy', mutate)

        assert branch_tip('bump-deps') is None
        assert api.pull_requests == {}
        assert list(workspace_root.iterdir()) == []
        observer.on_failure.assert_called_once()

    def test_failed_pr_check_skips_merge(self, make_orchestrator, head_resolver, author, workspace_root):
        api = InMemoryPullRequestAPI(
            default_statuses=[CommitStatus(context='ci', state='failure')], head_resolver=head_resolver
        )

        with pytest.raises(StatusFailedError):
            run(make_orchestrator(api), author)

        assert api.merge_calls == []
        assert list(workspace_root.iterdir()) == []

    def test_not_mergeable_leaves_pr_open(self, make_orchestrator, head_resolver, author, workspace_root):
        api = InMemoryPullRequestAPI(default_statuses=ALL_GREEN, head_resolver=head_resolver, mergeable=False)

        with pytest.raises(NotMergeableError):
            run(make_orchestrator(api), author)

        assert 1 in api.pull_requests
        assert api.merge_calls == []
        assert list(workspace_root.iterdir()) == []

    def test_merge_status_timeout(self, make_orchestrator, head_resolver, author, workspace_root):
        api = InMemoryPullRequestAPI(
            default_statuses=[CommitStatus(context='ci', state='success')], head_resolver=head_resolver
        )

        with pytest.raises(StatusTimeoutError) as exc_info:
            run(make_orchestrator(api, timeout=0.2), author)

        assert exc_info.value.context == 'deploy'
        assert api.merge_calls == [1]
        assert list(workspace_root.iterdir()) == []

    def test_create_failure_propagates_unchanged(self, make_orchestrator, author, bare_repo):
        api_error = GitHubAPIError('Validation Failed', status_code=422)
        api = InMemoryPullRequestAPI(failures={'create_pull_request': api_error})

        with pytest.raises(PRCreateError) as exc_info:
            run(make_orchestrator(api), author)

        assert exc_info.value.__cause__ is api_error


class TestBrokenObserver:
    def test_raising_failure_hook_keeps_run_error_and_cleans_up(
        self, credentials, local_cloner, workspace_root, head_resolver, author
    ):
        class BrokenObserver(LandingObserver):
            def on_failure(self, error):
                raise RuntimeError('observer broke')

        api = InMemoryPullRequestAPI(
            default_statuses=[CommitStatus(context='ci', state='failure')], head_resolver=head_resolver
        )
        orchestrator = LandingOrchestrator(
            'octocat/Hello-World',
            credentials,
            api=api,
            cloner=local_cloner,
            observer=BrokenObserver(),
            workspace_root=str(workspace_root),
            poll_interval=0.01,
            status_timeout=5,
        )

        with pytest.raises(StatusFailedError):
            run(orchestrator, author)

        assert list(workspace_root.iterdir()) == []

    def test_raising_teardown_hook_still_attaches_error(self, make_orchestrator, author, observer):
        observer.on_teardown_failed.side_effect = RuntimeError('observer broke')
        boom = OSError('device busy')

        with patch.object(Workspace, 'teardown', side_effect=boom):
            with pytest.raises(CloneError) as exc_info:
                run(make_orchestrator(InMemoryPullRequestAPI(), repo_name='octocat/missing'), author)

        assert exc_info.value.teardown_error is boom


class TestTeardownFailure:
    def test_teardown_failure_attached_to_result(self, make_orchestrator, head_resolver, author, observer):
        api = InMemoryPullRequestAPI(default_statuses=ALL_GREEN, head_resolver=head_resolver)
        boom = PermissionError('read-only filesystem')

        with patch.object(Workspace, 'teardown', side_effect=boom):
            result = run(make_orchestrator(api), author)

        assert result.teardown_error is boom
        assert result.pull_request.merge_sha is not None
        observer.on_teardown_failed.assert_called_once_with(boom)

    def test_teardown_failure_attached_to_run_error(self, make_orchestrator, author):
        api = InMemoryPullRequestAPI()
        boom = OSError('device busy')

        with patch.object(Workspace, 'teardown', side_effect=boom):
            with pytest.raises(CloneError) as exc_info:
                run(make_orchestrator(api, repo_name='octocat/missing'), author)

        assert exc_info.value.teardown_error is boom
