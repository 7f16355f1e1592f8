"""CLI interface for create-next-starter."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import click
from filelock import Timeout
from rich.logging import RichHandler
from rich.panel import Panel

from . import __version__
from .cache import CacheStore
from .config import PWA_MODES, StarterSettings, get_cache_dir, get_settings
from .errors import CollaboratorFetchError, NextStarterError, SourceNotFoundError
from .project import (
    ProjectRequest,
    generate_project,
    manual_setup_hints,
    pin_node_version,
    troubleshooting_hints,
)
from .registry import (
    LATEST,
    DependencyValidator,
    NodeVersionValidator,
    NpmRegistry,
    VersionValidator,
)
from .registry.versions import validate_package_name
from .templates import ScaffoldResult, TemplateManager
from .utils import console
from .utils.filesystem import list_files


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )


def build_cache_store(settings: StarterSettings, registry: NpmRegistry) -> CacheStore:
    return CacheStore(
        get_cache_dir(),
        DependencyValidator(registry),
        max_age=timedelta(hours=settings["cache_max_age_hours"]),
    )


def _ask(value: Optional[bool], question: str, default: bool, assume_yes: bool) -> bool:
    if value is not None:
        return value
    if assume_yes:
        return default
    return click.confirm(question, default=default)


def _project_name(value: str) -> str:
    try:
        return validate_package_name(value)
    except NextStarterError as e:
        raise click.BadParameter(str(e))


def show_cache_info(store: CacheStore) -> None:
    console.print(f"Cache directory: {store.cache_dir}")
    entry = store.read_entry()
    if entry is None:
        console.print("No cached template.", style="yellow")
        return
    updated = datetime.fromtimestamp(entry.last_updated / 1000)
    fresh = store.is_fresh(entry) and store.template_dir.is_dir()
    console.print(f"  template version: {entry.template_version}")
    console.print(f"  last updated: {updated:%Y-%m-%d %H:%M:%S}")
    console.print(f"  dependencies: {len(entry.dependencies)}")
    if store.template_dir.is_dir():
        console.print(f"  files: {len(list_files(store.template_dir))}")
    console.print(
        f"  status: {'fresh' if fresh else 'stale'}", style="green" if fresh else "yellow"
    )


def print_summary(result: ScaffoldResult) -> None:
    source = "cache" if result.cache_hit else "fresh clone"
    console.print(f"Template {result.template_version or 'unknown'} from {source}", style="dim")
    if result.overlay is not None and result.overlay.copied:
        console.print(f"✓ Added {', '.join(result.overlay.copied)}", style="green")
    if result.installed:
        console.print(f"✓ Installed {len(result.installed)} additional packages", style="green")
    if result.cached:
        console.print("✓ Template cached for next time", style="green")
    if result.warnings:
        console.print(
            "⚠️  Some custom features may not have been added completely:", style="yellow"
        )
        for warning in result.warnings:
            console.print(f"  - {warning}", style="yellow")


def print_failure(error: BaseException, settings: Optional[StarterSettings]) -> None:
    console.print("❌ Failed to create app", style="bold red")
    console.print(str(error), highlight=False)
    if settings is not None and isinstance(error, (CollaboratorFetchError, SourceNotFoundError)):
        console.print("\nTo add the features manually:", style="cyan")
        for step in manual_setup_hints(
            settings["template"]["url"],
            settings["default_dependencies"],
            settings["package_runner"],
        ):
            console.print(step, style="cyan")
    console.print("\nTroubleshooting:", style="yellow")
    for hint in troubleshooting_hints():
        console.print(f"  - {hint}", style="yellow")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("target", required=False)
@click.option("--next-version", default=None, help='Pin the Next.js version (semver or "latest")')
@click.option("--node-version", default=None, help='Pin engines.node (18, 18.x, 18.17.0 or "current")')
@click.option("--typescript/--no-typescript", default=None)
@click.option("--eslint/--no-eslint", default=None)
@click.option("--tailwind/--no-tailwind", default=None)
@click.option("--src-dir/--no-src-dir", default=None)
@click.option("--app-router/--no-app-router", default=None)
@click.option("--turbo/--no-turbo", default=None)
@click.option("--import-alias", default=None, help="Import alias (default @/*)")
@click.option("--shadcn/--no-shadcn", default=None, help="Add shadcn/ui components")
@click.option("--pwa/--no-pwa", default=None, help="Add PWA support")
@click.option("--pwa-mode", type=click.Choice(PWA_MODES), default=None)
@click.option("--template", "template_url", default=None, help="Template repository URL")
@click.option("--branch", default=None, help="Template repository branch")
@click.option("--no-cache", is_flag=True, help="Do not read or write the template cache")
@click.option("--cache-info", is_flag=True, help="Show the cached template and exit")
@click.option("--clear-cache", is_flag=True, help="Remove the cached template and exit")
@click.option("-y", "--yes", "assume_yes", is_flag=True, help="Accept defaults without prompting")
@click.option("-v", "--verbose", is_flag=True)
@click.version_option(__version__)
def cli(
    target: Optional[str],
    next_version: Optional[str],
    node_version: Optional[str],
    typescript: Optional[bool],
    eslint: Optional[bool],
    tailwind: Optional[bool],
    src_dir: Optional[bool],
    app_router: Optional[bool],
    turbo: Optional[bool],
    import_alias: Optional[str],
    shadcn: Optional[bool],
    pwa: Optional[bool],
    pwa_mode: Optional[str],
    template_url: Optional[str],
    branch: Optional[str],
    no_cache: bool,
    cache_info: bool,
    clear_cache: bool,
    assume_yes: bool,
    verbose: bool,
) -> None:
    """Create a new Next.js project with shadcn/ui components and PWA support."""
    configure_logging(verbose)
    settings: Optional[StarterSettings] = None
    try:
        settings = get_settings()
        registry = NpmRegistry(settings["registry_url"], settings["registry_timeout"])
        store = build_cache_store(settings, registry)

        if cache_info:
            show_cache_info(store)
            return
        if clear_cache:
            store.clear()
            console.print(f"Cleared template cache in {store.cache_dir}", style="green")
            return

        if target:
            name = _project_name(target)
        elif assume_yes:
            name = "my-app"
        else:
            console.print("\n🚀 Let's set up your project!\n", style="bold yellow")
            name = click.prompt("What is your project named?", default="my-app", value_proc=_project_name)

        alias = import_alias
        if alias is None and not assume_yes and click.confirm(
            "Would you like to customize the import alias (@/* by default)?", default=False
        ):
            alias = click.prompt("What import alias would you like configured?", default="@/*")

        request = ProjectRequest(
            project_name=name,
            typescript=_ask(typescript, "Would you like to use TypeScript?", True, assume_yes),
            eslint=_ask(eslint, "Would you like to use ESLint?", True, assume_yes),
            tailwind=_ask(tailwind, "Would you like to use Tailwind CSS?", True, assume_yes),
            src_dir=_ask(src_dir, "Would you like your code inside a src/ directory?", False, assume_yes),
            app_router=_ask(app_router, "Would you like to use App Router? (recommended)", True, assume_yes),
            turbo=_ask(turbo, "Would you like to use Turbopack for next dev?", False, assume_yes),
            import_alias=alias or "@/*",
            shadcn=_ask(shadcn, "Would you like to include shadcn/ui components?", True, assume_yes),
            pwa=_ask(pwa, "Would you like to add PWA support?", True, assume_yes),
            pwa_mode=pwa_mode or settings["overlay"]["pwa_mode"],
            next_version=VersionValidator(registry).validate(next_version or LATEST, "next"),
            node_version=NodeVersionValidator().validate(node_version) if node_version else None,
        )

        console.print("\n📦 Setting up your project...\n", style="yellow")
        console.print("🚀 Initializing Next.js application...")
        project_dir = generate_project(request, Path.cwd(), settings["package_runner"])
        if request.node_version:
            pin_node_version(project_dir, request.node_version)

        if request.wants_overlay:
            console.print("🎨 Adding custom features...")
            manager = TemplateManager.from_settings(
                settings,
                registry,
                cache=None if no_cache else store,
                template_url=template_url,
                branch=branch,
            )
            print_summary(manager.run(request, project_dir))

        console.print("✨ Successfully created your app!", style="yellow")
        console.print(
            Panel(
                f"1. cd {request.project_name}\n"
                f"2. {settings['package_runner']} install\n"
                f"3. {settings['package_runner']} dev",
                title="🚀 Get Started",
                border_style="yellow",
            )
        )
    except KeyboardInterrupt:
        console.print("\n🛑 Interrupted", style="yellow")
        sys.exit(130)
    except NextStarterError as e:
        print_failure(e, settings)
        sys.exit(1)
    except (OSError, Timeout) as e:
        print_failure(e, settings)
        sys.exit(1)


def main() -> None:
    cli()
