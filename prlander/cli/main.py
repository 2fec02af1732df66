# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
prlander CLI - Main entry point

Usage:
    prlander land OWNER/REPO ...          - Commit a directory's contents, open a PR, wait, merge (alias: l)
    prlander wait-status OWNER/REPO SHA   - Wait for one status check on a commit (alias: w)
"""

import shutil
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from prlander import __version__, config
from prlander.backends.github import GitHubRestAPI
from prlander.classes import Author, LandingResult
from prlander.errors import PRLanderError
from prlander.orchestrator import LandingOrchestrator
from prlander.status_waiter import StatusWaiter
from prlander.utils.logging import EventsObserver, LoggingObserver
from prlander.utils.utils import parse_repo_name
from prlander.workspace import MutateFn

console = Console()


class AliasGroup(click.Group):
    """Click Group that supports command aliases without duplicate help entries."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._aliases = {}  # alias -> canonical name

    def add_alias(self, name, alias):
        """Register an alias for an existing command."""
        self._aliases[alias] = name

    def get_command(self, ctx, cmd_name):
        canonical = self._aliases.get(cmd_name, cmd_name)
        return super().get_command(ctx, canonical)

    def format_commands(self, ctx, formatter):
        """Write the help text, appending aliases to command descriptions."""
        alias_map = {}
        for alias, canonical in self._aliases.items():
            alias_map.setdefault(canonical, []).append(alias)

        commands = []
        for subcommand in self.list_commands(ctx):
            cmd = self.commands.get(subcommand)
            if cmd is None or cmd.hidden:
                continue
            help_text = cmd.get_short_help_str(limit=150)
            aliases = alias_map.get(subcommand)
            if aliases:
                subcommand = f'{subcommand}, {", ".join(sorted(aliases))}'
            commands.append((subcommand, help_text))

        if commands:
            with formatter.section('Commands'):
                formatter.write_dl(commands)


def copy_tree_mutation(source_dir: Path, message: str, author: Author) -> MutateFn:
    """Build a mutation that overlays source_dir onto the worktree."""

    def mutate(workdir: Path):
        shutil.copytree(source_dir, workdir, dirs_exist_ok=True, ignore=shutil.ignore_patterns('.git'))
        return message, author

    return mutate


def print_result(result: LandingResult) -> None:
    table = Table(show_header=True)
    table.add_column('Field', style='cyan')
    table.add_column('Value', style='green')

    pr = result.pull_request
    table.add_row('Branch', result.branch_name)
    table.add_row('Commit', result.commit_sha)
    table.add_row('PR', f'#{pr.number}')
    table.add_row('Head sha', pr.head_sha or '-')
    table.add_row('Merge sha', pr.merge_sha or '-')
    table.add_row('Stages', ' → '.join(stage.value for stage in result.stages))
    console.print(table)

    if result.teardown_error is not None:
        console.print(f'[yellow]Warning: workspace was not removed: {result.teardown_error}[/yellow]')


def fail(error: PRLanderError) -> None:
    console.print(f'[red]Error: {error}[/red]')
    if error.teardown_error is not None:
        console.print(f'[yellow]Workspace was not removed: {error.teardown_error}[/yellow]')
    raise SystemExit(1)


@click.group(cls=AliasGroup)
@click.version_option(version=__version__, prog_name='prlander')
def cli():
    """prlander - Land changes on GitHub through a pull request"""
    pass


@cli.command('land')
@click.argument('repo_name', type=str)
@click.option('--branch', 'branch_name', required=True, help='Branch to create and push')
@click.option('--base', 'base_branch', default='main', show_default=True, help='Branch to merge into')
@click.option('--pr-context', required=True, help='Status check that must pass on the PR head')
@click.option('--merge-context', default=None, help='Status check that must pass on the merge commit [default: --pr-context]')
@click.option(
    '--source-dir',
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Directory whose contents are copied into the repository',
)
@click.option('--message', required=True, help='Commit message')
@click.option('--author-name', required=True)
@click.option('--author-email', required=True)
@click.option('--title', default=None, help='PR title [default: first line of --message]')
@click.option('--body', default='', help='PR body')
@click.option('--username', default=None, help='GitHub username [env: GITHUB_USERNAME]')
@click.option('--token', default=None, help='GitHub token [env: GITHUB_TOKEN]')
@click.option('--events-dir', type=click.Path(file_okay=False), default=None, help='Directory for events.log')
def land(
    repo_name: str,
    branch_name: str,
    base_branch: str,
    pr_context: str,
    merge_context: Optional[str],
    source_dir: Path,
    message: str,
    author_name: str,
    author_email: str,
    title: Optional[str],
    body: str,
    username: Optional[str],
    token: Optional[str],
    events_dir: Optional[str],
):
    """Commit SOURCE_DIR to a new branch, open a PR, wait for CI, merge and wait again.

    \b
    Examples:
        prlander land octocat/Hello-World --branch bump-deps --pr-context ci \\
            --source-dir ./generated --message "Bump deps" \\
            --author-name bot --author-email bot@example.com
    """
    if not message.strip():
        raise click.BadParameter('must not be empty', param_hint="'--message'")

    try:
        parse_repo_name(repo_name)
        credentials = config.load_credentials(username, token)

        if events_dir:
            Path(events_dir).mkdir(parents=True, exist_ok=True)
            observer = EventsObserver(events_dir, label=f'{repo_name}:{branch_name}')
        else:
            observer = LoggingObserver()

        orchestrator = LandingOrchestrator(
            repo_name,
            credentials,
            observer=observer,
            workspace_root=config.WORKSPACE_ROOT,
            poll_interval=config.POLL_INTERVAL,
            status_timeout=config.STATUS_TIMEOUT,
            api_url=config.GITHUB_API_URL,
        )
        author = Author(name=author_name, email=author_email)
        result = orchestrator.run(
            branch_name,
            base_branch,
            pr_context,
            merge_context or pr_context,
            copy_tree_mutation(source_dir, message, author),
            title=title or message.strip().splitlines()[0],
            body=body,
        )
    except PRLanderError as e:
        fail(e)
        return

    console.print(f'\n[bold green]Landed {repo_name} PR #{result.pull_request.number}[/bold green]\n')
    print_result(result)


@cli.command('wait-status')
@click.argument('repo_name', type=str)
@click.argument('sha', type=str)
@click.option('--context', required=True, help='Status check name')
@click.option('--timeout', type=float, default=None, help='Seconds to wait [env: PRLANDER_STATUS_TIMEOUT]')
@click.option('--interval', type=float, default=None, help='Seconds between polls [env: PRLANDER_POLL_INTERVAL]')
@click.option('--username', default=None, help='GitHub username [env: GITHUB_USERNAME]')
@click.option('--token', default=None, help='GitHub token [env: GITHUB_TOKEN]')
def wait_status(
    repo_name: str,
    sha: str,
    context: str,
    timeout: Optional[float],
    interval: Optional[float],
    username: Optional[str],
    token: Optional[str],
):
    """Wait until status check CONTEXT on SHA succeeds."""
    try:
        owner, repo = parse_repo_name(repo_name)
        credentials = config.load_credentials(username, token)
        waiter = StatusWaiter(
            GitHubRestAPI(credentials, base_url=config.GITHUB_API_URL),
            owner,
            repo,
            poll_interval=interval if interval is not None else config.POLL_INTERVAL,
            timeout=timeout if timeout is not None else config.STATUS_TIMEOUT,
        )
        waiter.wait(sha, context)
    except PRLanderError as e:
        fail(e)
        return

    console.print(f"[green]'{context}' succeeded on {sha}[/green]")


cli.add_alias('land', 'l')
cli.add_alias('wait-status', 'w')


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
