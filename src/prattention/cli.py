"""Command-line interface for prattention."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from prattention import __version__
from prattention.cache import TTLCache
from prattention.config import (
    ProjectConfig,
    find_project_root,
    get_store_dir,
    load_config,
    save_config,
    set_config_value,
)
from prattention.exceptions import ConfigError, StoreError
from prattention.ui.console import Console

console = Console()


def _get_project_root(path: str | None = None, required: bool = False) -> Path:
    """Find the project root, falling back to the working directory."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        if required:
            console.error(
                "No prattention project found. Run 'prattention init' first, "
                "or specify a path with --path."
            )
            sys.exit(1)
        return Path.cwd()
    return root


def _load(path: str | None, required: bool = False) -> tuple[Path, ProjectConfig]:
    """Resolve the project root, load its config and set up logging."""
    root = _get_project_root(path, required)
    try:
        config = load_config(root)
    except ConfigError as e:
        console.error(str(e))
        sys.exit(1)

    ctx = click.get_current_context()
    level = (ctx.find_root().obj or {}).get("log_level") or config.log_level
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return root, config


def _make_resolver(root: Path, config: ProjectConfig, ref: str | None):
    """Build an OwnershipResolver reading from the working tree or a git ref."""
    from prattention.ownership.resolver import OwnershipResolver
    from prattention.sources import DirectoryFetcher, GitFetcher, SourceFiles, SourceRef

    fetcher = GitFetcher(root) if ref else DirectoryFetcher(root)
    sources = SourceFiles(fetcher, TTLCache(config.ownership.cache_ttl_seconds))
    source_ref = SourceRef(workspace="local", repo=root.name, branch=ref or "")
    return OwnershipResolver(sources, config.ownership), source_ref


def _make_tracker(root: Path, config: ProjectConfig):
    from prattention.turns.store import JsonFileStore
    from prattention.turns.tracker import AttentionTracker

    store = JsonFileStore(get_store_dir(root, config))
    return AttentionTracker(store, config=config.turns)


@click.group()
@click.version_option(version=__version__, prog_name="prattention")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (default: from config, else WARNING).",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None):
    """prattention - whose turn is it, and who owns these files?"""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
def init(path: str | None):
    """Initialize prattention for a repository."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    try:
        config = load_config(root)
    except ConfigError as e:
        console.error(str(e))
        sys.exit(1)
    config.name = root.name
    config.root_path = str(root)
    save_config(root, config)
    console.success(f"Initialized prattention in {root}")

    codeowners = root / config.ownership.codeowners_file
    if not codeowners.exists():
        console.warning(f"No {config.ownership.codeowners_file} file found: nobody owns anything yet")


# =========================================================================
# Ownership
# =========================================================================

@main.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
@click.option("--ref", "-r", default=None, help="Read ownership files at a git ref.")
@click.option("--raw", is_flag=True, help="Show groups instead of expanding them.")
def owners(paths: tuple[str, ...], project: str | None, ref: str | None, raw: bool):
    """Show the code owners of the given file paths."""
    root, config = _load(project)
    resolver, source_ref = _make_resolver(root, config, ref)

    path_owners, groups = resolver.owners_per_path(source_ref, paths, flatten=not raw)
    if not path_owners:
        console.warning("No usable CODEOWNERS file found")
        return

    from prattention.ownership.highrisk import is_high_risk, parse_high_risk

    prefixes = parse_high_risk(resolver.sources.get(source_ref, config.ownership.high_risk_file))
    high_risk = {p for p in paths if is_high_risk(prefixes, p)}
    console.show_owners(path_owners, high_risk, groups)


@main.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("--approver", "-a", multiple=True, help="Someone who approved (repeatable).")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
@click.option("--ref", "-r", default=None, help="Read ownership files at a git ref.")
def explain(paths: tuple[str, ...], approver: tuple[str, ...], project: str | None, ref: str | None):
    """Explain who owns each file, including group memberships."""
    root, config = _load(project)
    resolver, source_ref = _make_resolver(root, config, ref)

    from prattention.ownership.renderer import render_explanation

    path_owners, groups = resolver.owners_per_path(source_ref, paths, flatten=False)
    console.markdown(render_explanation(list(paths), path_owners, groups, list(approver)))


@main.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("--approver", "-a", multiple=True, help="Someone who approved (repeatable).")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
@click.option("--ref", "-r", default=None, help="Read ownership files at a git ref.")
def approved(paths: tuple[str, ...], approver: tuple[str, ...], project: str | None, ref: str | None):
    """Check whether the approvers cover every code owner. Exits 1 if not."""
    root, config = _load(project)
    resolver, source_ref = _make_resolver(root, config, ref)

    if resolver.got_all_required_approvals(source_ref, paths, approver):
        console.success("All required approvals are present")
    else:
        console.warning("Missing required approvals")
        sys.exit(1)


@main.command("high-risk")
@click.argument("paths", nargs=-1, required=True)
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
@click.option("--ref", "-r", default=None, help="Read ownership files at a git ref.")
def high_risk(paths: tuple[str, ...], project: str | None, ref: str | None):
    """Count how many of the given paths are high risk."""
    root, config = _load(project)
    resolver, source_ref = _make_resolver(root, config, ref)

    count = resolver.count_high_risk_files(source_ref, paths)
    if count:
        console.warning(f"{count} of {len(paths)} file(s) are high risk")
    else:
        console.success("No high-risk files")


@main.command()
@click.option("--base", "-b", default="main", help="Base branch (default: main).")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def changed(base: str, project: str | None):
    """Show the files changed since a base branch, with their owners."""
    root, config = _load(project)

    from prattention.diffstat import changed_paths, get_git_diff, parse_diff

    file_diffs = parse_diff(get_git_diff(root, base))
    if not file_diffs:
        console.info("No changes detected")
        return

    resolver, source_ref = _make_resolver(root, config, base)
    path_owners, _ = resolver.owners_per_path(source_ref, changed_paths(file_diffs))
    console.show_changes(file_diffs, path_owners)


@main.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("--reviewer", "-r", "reviewers", multiple=True, required=True,
              help="A current reviewer (repeatable).")
@click.option("--approver", "-a", multiple=True, help="Someone who approved (repeatable).")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
@click.option("--ref", default=None, help="Read ownership files at a git ref.")
def prune(
    paths: tuple[str, ...], reviewers: tuple[str, ...], approver: tuple[str, ...],
    project: str | None, ref: str | None,
):
    """List reviewers who can be dropped: they own none of the files and did not approve."""
    root, config = _load(project)
    resolver, source_ref = _make_resolver(root, config, ref)

    prunable = resolver.prunable_reviewers(source_ref, paths, reviewers, approver)
    if not prunable:
        console.info("No reviewers can be dropped")
        return
    for r in prunable:
        console.console.print(f"  [yellow]{r}[/yellow]")


# =========================================================================
# Turns
# =========================================================================

@main.group()
def turn():
    """Track whose turn it is to act on a pull request."""


def _turn_action(project: str | None, action):
    root, config = _load(project)
    tracker = _make_tracker(root, config)
    try:
        return action(tracker)
    except StoreError as e:
        console.error(str(e))
        sys.exit(1)


def _report(changed_state: bool, yes: str, no: str) -> None:
    if changed_state:
        console.success(yes)
    else:
        console.info(no)


@turn.command("init")
@click.argument("pr")
@click.argument("author")
@click.argument("reviewers", nargs=-1)
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_init(pr: str, author: str, reviewers: tuple[str, ...], project: str | None):
    """Start tracking a PR."""
    state = _turn_action(project, lambda t: t.init(pr, author, reviewers))
    console.show_turn(pr, state)


@turn.command("add")
@click.argument("pr")
@click.argument("email")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_add(pr: str, email: str, project: str | None):
    """Add a reviewer."""
    _report(_turn_action(project, lambda t: t.add_reviewer(pr, email)),
            f"Added {email}", "Nothing changed")


@turn.command("remove")
@click.argument("pr")
@click.argument("email")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_remove(pr: str, email: str, project: str | None):
    """Stop tracking a reviewer (approved or unassigned)."""
    _report(_turn_action(project, lambda t: t.remove_reviewer(pr, email)),
            f"Removed {email}", "Nothing changed")


@turn.command("explicit")
@click.argument("pr")
@click.argument("emails", nargs=-1, required=True)
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_explicit(pr: str, emails: tuple[str, ...], project: str | None):
    """Pin the attention set to exactly these users."""
    _report(_turn_action(project, lambda t: t.set_explicit(pr, emails)),
            f"Pinned attention to {', '.join(emails)}", "Nothing changed")


@turn.command("switch")
@click.argument("pr")
@click.argument("email")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_switch(pr: str, email: str, project: str | None):
    """Record that a user acted on the PR."""
    _report(_turn_action(project, lambda t: t.switch(pr, email)),
            "Turn switched", "Nothing changed (frozen, or nothing to switch)")


@turn.command("freeze")
@click.argument("pr")
@click.argument("by")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_freeze(pr: str, by: str, project: str | None):
    """Suspend automatic turn switching."""
    _report(_turn_action(project, lambda t: t.freeze(pr, by)),
            f"Frozen by {by}", "Already frozen")


@turn.command("unfreeze")
@click.argument("pr")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_unfreeze(pr: str, project: str | None):
    """Resume automatic turn switching."""
    _report(_turn_action(project, lambda t: t.unfreeze(pr)), "Unfrozen", "Not frozen")


@turn.command("nudge")
@click.argument("pr")
@click.argument("email")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_nudge(pr: str, email: str, project: str | None):
    """Make it a participant's turn."""
    if not _turn_action(project, lambda t: t.nudge(pr, email)):
        console.error(f"{email} is not the author or a reviewer of {pr}")
        sys.exit(1)
    console.success(f"Nudged {email}")


@turn.command("show")
@click.argument("pr")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_show(pr: str, project: str | None):
    """Show the attention state of a PR."""
    state = _turn_action(project, lambda t: t.load(pr))
    if state is None:
        console.error(f"Not tracking {pr}")
        sys.exit(1)
    console.show_turn(pr, state)


@turn.command("delete")
@click.argument("pr")
@click.option("--path", "-p", "project", default=None, help="Path to the project root.")
def turn_delete(pr: str, project: str | None):
    """Stop tracking a PR."""
    _turn_action(project, lambda t: t.delete(pr))
    console.success(f"Stopped tracking {pr}")


# =========================================================================
# Config Management
# =========================================================================

@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage prattention configuration."""
    root, config = _load(path, required=True)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: prattention config get <key>")
            sys.exit(1)
        data = config.model_dump()
        for part in key.split("."):
            if isinstance(data, dict) and part in data:
                data = data[part]
            else:
                console.error(f"Unknown key: {key}")
                sys.exit(1)
        console.console.print(f"{key} = {data}")
    elif action == "set":
        if not key or value is None:
            console.error("Usage: prattention config set <key> <value>")
            sys.exit(1)
        # Try to parse as JSON for non-string values
        try:
            parsed_value = json.loads(value)
        except json.JSONDecodeError:
            parsed_value = value

        try:
            config = set_config_value(config, key, parsed_value)
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)
        except ValueError as e:
            console.error(f"Invalid value for {key}: {e}")
            sys.exit(1)
        save_config(root, config)
        console.success(f"Set {key} = {parsed_value}")


if __name__ == "__main__":
    main()
