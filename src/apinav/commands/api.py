"""API commands -- list, inspect, compile, and register configured APIs.

Provides the ``apinav api`` sub-command group. Every command loads the
:class:`~apinav.registry.Registry` from the global ``apis.json`` and any
local ``.apinav.json`` / ``.apinav.yaml`` files, so the output always
reflects the merged view for the current working directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from apinav.models import API, APIAuth, APIConfig, APIProfile, AutoConfig
from apinav.output import error, format_response, get_output, info, success, warning

api_app = typer.Typer(no_args_is_help=True)


def _registry(ctx: typer.Context):  # noqa: ANN202
    from apinav.registry import create_default_registry

    obj = ctx.find_root().obj or {}
    return create_default_registry(override=obj.get("config"))


def _profile(ctx: typer.Context, profile: Optional[str]) -> str:
    from apinav.registry import DEFAULT_PROFILE

    if profile:
        return profile
    obj = ctx.find_root().obj or {}
    return obj.get("profile") or DEFAULT_PROFILE


@api_app.command("list")
def api_list(ctx: typer.Context) -> None:
    """List configured APIs.

    Example::

        apinav api list
        apinav --json api list
    """
    registry = _registry(ctx)
    rows: list[list[str]] = []
    for name in registry.names():
        config = registry.get(name)
        rows.append([
            name,
            config.base,
            ", ".join(config.spec_files) or "-",
            ", ".join(sorted(config.profiles)) or "-",
        ])

    if not rows:
        info("No APIs configured. Run: apinav api add NAME BASE")
        return
    get_output().print_table(
        ["Name", "Base", "Spec files", "Profiles"], rows, title=f"APIs ({len(rows)})"
    )


@api_app.command("show")
def api_show(
    ctx: typer.Context,
    name: str = typer.Argument(help="API name."),
) -> None:
    """Show the merged configuration of one API.

    The files that contributed to the entry are listed on stderr.

    Example::

        apinav api show widgets
    """
    registry = _registry(ctx)
    config = registry.get(name)
    for path in registry.sources.get(name, []):
        info(f"Source: {path}")
    format_response(config.to_file_entry())


@api_app.command("profiles")
def api_profiles(
    ctx: typer.Context,
    name: str = typer.Argument(help="API name."),
) -> None:
    """List the profiles declared by one API.

    Example::

        apinav api profiles widgets
    """
    registry = _registry(ctx)
    config = registry.get(name)
    rows = [
        [
            profile_name,
            profile.base or config.base,
            profile.auth.name if profile.auth else "-",
        ]
        for profile_name, profile in sorted(config.profiles.items())
    ]
    if not rows:
        info(f"API '{name}' declares no profiles; the default profile is used.")
        return
    get_output().print_table(["Profile", "Base", "Auth"], rows, title=name)


@api_app.command("sync")
def api_sync(
    ctx: typer.Context,
    name: str = typer.Argument(help="API name."),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile to validate and report the base for."
    ),
    show_all: bool = typer.Option(
        False, "--all", help="Include hidden operations."
    ),
) -> None:
    """Compile an API description and list its operations.

    Example::

        apinav api sync widgets
        apinav api sync widgets --all
    """
    registry = _registry(ctx)
    selected = _profile(ctx, profile)
    base = registry.effective_base(name, selected)
    api = registry.load_api(name)

    operations = api.operations if show_all else api.visible_operations()
    rows = [
        [
            op.name,
            op.method,
            op.uri_template,
            op.group or "-",
            "deprecated" if op.deprecated else ("hidden" if op.hidden else ""),
        ]
        for op in operations
    ]
    info(f"{api.short or name} ({base})")
    get_output().print_table(
        ["Operation", "Method", "URI template", "Group", "Notes"],
        rows,
        title=f"{name} -- Operations ({len(rows)})",
    )


@api_app.command("describe")
def api_describe(
    ctx: typer.Context,
    name: str = typer.Argument(help="API name."),
    operation: str = typer.Argument(help="Operation name or alias."),
) -> None:
    """Print the generated documentation of one operation.

    Example::

        apinav api describe widgets get-widget
    """
    registry = _registry(ctx)
    for op in registry.operations(name):
        if operation == op.name or operation in op.aliases:
            output = get_output()
            output.print_data(f"{op.method} {op.uri_template}")
            if op.short:
                output.print_data(op.short)
            output.print_markdown(op.long)
            for example in op.examples:
                output.print_data(f"  apinav {name} {op.name} {example}")
            return

    error(f"Operation '{operation}' not found for API '{name}'.")
    raise typer.Exit(code=4)


@api_app.command("add")
def api_add(
    ctx: typer.Context,
    name: str = typer.Argument(help="Short name for the API."),
    base: str = typer.Argument(help="Base URI of the API."),
    spec_files: Optional[list[str]] = typer.Option(
        None, "--spec", "-s", help="API description path or URL (repeatable)."
    ),
    operation_base: Optional[str] = typer.Option(
        None, "--operation-base", help="Base that operation paths resolve against."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Use defaults instead of prompting."
    ),
) -> None:
    """Register an API, or update an existing one, and save it.

    When the API description declares an ``x-cli-config`` block, its
    headers and auth become the default profile, prompting for any values
    it asks for.

    Example::

        apinav api add widgets https://api.example.com
        apinav api add widgets https://api.example.com --spec ./openapi.yaml
    """
    from apinav.config import resolve_spec_files
    from apinav.exceptions import SpecError

    registry = _registry(ctx)
    config = APIConfig(
        name=name,
        base=base,
        operation_base=operation_base,
        spec_files=resolve_spec_files(list(spec_files or []), Path.cwd()),
    )
    registry.add(config)

    try:
        api = registry.load_api(name)
    except SpecError as exc:
        warning(f"Could not load the API description: {exc}")
    else:
        _apply_auto_config(registry.get(name), api, no_input)

    chooser = None if no_input else _choose_target
    path = registry.save(name, choose=chooser)
    success(f"API '{name}' saved to {path}")


def _choose_target(options: list[str]) -> str:
    """Ask which file to save to, as a numbered list."""
    info("This API is configured in several files:")
    for i, option in enumerate(options, 1):
        info(f"  {i}. {option}")
    choice = typer.prompt("Save to", default=str(len(options) - 1))
    try:
        idx = int(choice) - 1
    except ValueError:
        error("Invalid selection.")
        raise typer.Exit(code=2) from None
    if idx < 0 or idx >= len(options):
        error(f"Selection must be between 1 and {len(options)}.")
        raise typer.Exit(code=2)
    return options[idx]


def _apply_auto_config(config: APIConfig, api: API, no_input: bool) -> None:
    """Fill the default profile from the description's auto-configuration."""
    from apinav.registry import DEFAULT_PROFILE

    auto: Optional[AutoConfig] = api.auto_config
    if auto is None or DEFAULT_PROFILE in config.profiles:
        return

    params = dict(auto.auth.params)
    for key, var in auto.prompt.items():
        default = var.default if var.default is not None else (var.example or "")
        if no_input:
            value = str(default)
        else:
            label = var.description or key
            if var.enum:
                label += f" ({', '.join(str(v) for v in var.enum)})"
            value = typer.prompt(label, default=str(default))
        if not var.exclude:
            params[key] = value

    config.profiles[DEFAULT_PROFILE] = APIProfile(
        headers=dict(auto.headers),
        auth=APIAuth(name=auto.auth.name, params=params) if auto.auth.name else None,
    )
    info(f"Applied auto-configuration ({auto.auth.name or 'no auth'})")
