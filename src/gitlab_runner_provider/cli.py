"""
Command-line interface for GitLab Runner Provider.

This module provides a CLI that plans and applies declared GitLab runner
resources, keeps a local state file and displays it with sensitive values
redacted.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog
import typer
import yaml
from pydantic import ValidationError

from .controllers.lifecycle import Action, LifecycleController, PlannedChange
from .models.provider import DeploymentConfiguration, ProviderConfiguration
from .provider import RESOURCE_CLASSES, GitLabProvider
from .state import StateStore
from .utils.security import SecurityValidator

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="gitlab-runner-provider",
    help="Declarative management of GitLab CI/CD runners",
    no_args_is_help=True
)

logger = structlog.get_logger()

SCHEMAS = {cls.type_name: cls.schema for cls in RESOURCE_CLASSES}

ACTION_SYMBOLS = {
    Action.CREATE: "+",
    Action.UPDATE: "~",
    Action.REPLACE: "-/+",
    Action.DELETE: "-",
    Action.NOOP: " ",
}

ConfigOption = typer.Option(
    "runners.yaml",
    "--config", "-c",
    help="Path to deployment configuration file",
    envvar="GITLAB_PROVIDER_CONFIG"
)
StateOption = typer.Option(
    "gitlab-runners.state.json",
    "--state", "-s",
    help="Path to state file",
    envvar="GITLAB_PROVIDER_STATE"
)
BaseUrlOption = typer.Option(
    None,
    "--base-url",
    help="GitLab server URL (overrides the configuration file)",
    envvar="GITLAB_BASE_URL"
)
TokenOption = typer.Option(
    None,
    "--token",
    help="GitLab API token (overrides the configuration file)",
    envvar="GITLAB_TOKEN",
    show_default=False
)
LogLevelOption = typer.Option(
    "WARNING",
    "--log-level", "-l",
    help="Logging level",
    envvar="LOG_LEVEL"
)
LogFormatOption = typer.Option(
    "json",
    "--log-format",
    help="Log format (json or console)",
    envvar="LOG_FORMAT"
)


def load_configuration(config_path: str) -> DeploymentConfiguration:
    """
    Load and validate a deployment configuration file.

    Args:
        config_path: Path to a YAML or JSON configuration file

    Returns:
        Validated configuration object

    Raises:
        typer.Exit: If configuration is missing or invalid
    """
    config_file = Path(config_path)

    if not config_file.exists():
        typer.echo(f"Error: Configuration file not found: {config_path}", err=True)
        raise typer.Exit(1)

    try:
        with open(config_file, "r") as f:
            if config_path.endswith(".json"):
                config_data = json.load(f)
            else:
                config_data = yaml.safe_load(f)

        return DeploymentConfiguration.model_validate(config_data or {})

    except ValidationError as e:
        typer.echo("Configuration validation error:", err=True)
        for error in e.errors():
            typer.echo(f"  {error['loc']}: {error['msg']}", err=True)
        raise typer.Exit(1)
    except (OSError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)


def setup_logging(log_level: str, log_format: str = "json") -> None:
    """Setup structured logging with specified level and format."""
    logging.basicConfig(level=getattr(logging, log_level.upper()))

    if log_format == "console":
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.dev.ConsoleRenderer()
            ]
        )


def build_provider(provider_config: ProviderConfiguration,
                   base_url: Optional[str],
                   token: Optional[str]) -> GitLabProvider:
    """Apply command-line overrides to the provider settings and build the provider."""
    settings: Dict[str, Any] = provider_config.model_dump()
    if base_url:
        settings["base_url"] = base_url
    if token:
        settings["token"] = token
    return GitLabProvider(ProviderConfiguration.model_validate(settings))


def _controller(config: str,
                state: str,
                base_url: Optional[str],
                token: Optional[str]) -> Tuple[LifecycleController, DeploymentConfiguration]:
    deployment = load_configuration(config)
    try:
        provider = build_provider(deployment.provider, base_url, token)
    except ValidationError as e:
        typer.echo(f"❌ Invalid provider settings: {e}", err=True)
        raise typer.Exit(1)
    return LifecycleController(provider, StateStore(state)), deployment


def _print_plan(changes: List[PlannedChange]) -> None:
    pending = [c for c in changes if c.action != Action.NOOP]
    if not pending:
        typer.echo("✅ No changes. Resources match the configuration.")
        return

    for change in pending:
        line = f"  {ACTION_SYMBOLS[change.action]} {change.address} ({change.action.value})"
        if change.changed:
            line += f": {', '.join(change.changed)}"
        typer.echo(line)

    counts = {action: sum(1 for c in pending if c.action == action) for action in Action}
    typer.echo(
        f"📋 Plan: {counts[Action.CREATE]} to create, {counts[Action.UPDATE]} to update, "
        f"{counts[Action.REPLACE]} to replace, {counts[Action.DELETE]} to delete."
    )


@app.command()
def plan(
    config: str = ConfigOption,
    state: str = StateOption,
    base_url: Optional[str] = BaseUrlOption,
    token: Optional[str] = TokenOption,
    log_level: str = LogLevelOption,
    log_format: str = LogFormatOption,
) -> None:
    """
    Show the changes apply would make.

    Refreshes recorded resources first, so the plan reflects changes made
    outside this tool.
    """
    setup_logging(log_level, log_format)
    controller, deployment = _controller(config, state, base_url, token)

    try:
        with controller.provider:
            controller.refresh()
            _print_plan(controller.plan(deployment.resources))
    except Exception as e:
        typer.echo(f"❌ Plan failed: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def apply(
    config: str = ConfigOption,
    state: str = StateOption,
    base_url: Optional[str] = BaseUrlOption,
    token: Optional[str] = TokenOption,
    auto_approve: bool = typer.Option(
        False,
        "--auto-approve",
        help="Skip interactive approval of the plan"
    ),
    log_level: str = LogLevelOption,
    log_format: str = LogFormatOption,
) -> None:
    """
    Create, update, replace and delete resources to match the configuration.
    """
    setup_logging(log_level, log_format)
    controller, deployment = _controller(config, state, base_url, token)

    try:
        with controller.provider:
            approved = None
            if not auto_approve:
                controller.refresh()
                approved = controller.plan(deployment.resources)
                _print_plan(approved)
                if all(c.action == Action.NOOP for c in approved):
                    return
                typer.confirm("Apply these changes?", abort=True)

            changes = controller.apply(deployment.resources, approved=approved)
    except typer.Abort:
        raise
    except Exception as e:
        typer.echo(f"❌ Apply failed: {e}", err=True)
        raise typer.Exit(1)

    applied = [c for c in changes if c.action != Action.NOOP]
    typer.echo(f"✅ Apply complete. {len(applied)} resource(s) changed.")


@app.command()
def refresh(
    config: str = ConfigOption,
    state: str = StateOption,
    base_url: Optional[str] = BaseUrlOption,
    token: Optional[str] = TokenOption,
    log_level: str = LogLevelOption,
    log_format: str = LogFormatOption,
) -> None:
    """Update the state file from GitLab without changing any resource."""
    setup_logging(log_level, log_format)
    controller, _ = _controller(config, state, base_url, token)

    try:
        with controller.provider:
            outcomes = controller.refresh()
    except Exception as e:
        typer.echo(f"❌ Refresh failed: {e}", err=True)
        raise typer.Exit(1)

    for address, outcome in sorted(outcomes.items()):
        typer.echo(f"  {address}: {outcome.value}")
    typer.echo(f"✅ Refreshed {len(outcomes)} resource(s).")


@app.command()
def destroy(
    config: str = ConfigOption,
    state: str = StateOption,
    base_url: Optional[str] = BaseUrlOption,
    token: Optional[str] = TokenOption,
    auto_approve: bool = typer.Option(
        False,
        "--auto-approve",
        help="Skip interactive approval"
    ),
    log_level: str = LogLevelOption,
    log_format: str = LogFormatOption,
) -> None:
    """Delete every resource recorded in the state file."""
    setup_logging(log_level, log_format)
    controller, _ = _controller(config, state, base_url, token)

    if not len(controller.state):
        typer.echo("✅ Nothing to destroy.")
        return

    if not auto_approve:
        for address in controller.state.addresses():
            typer.echo(f"  - {address}")
        typer.confirm("Destroy these resources?", abort=True)

    try:
        with controller.provider:
            changes = controller.destroy()
    except Exception as e:
        typer.echo(f"❌ Destroy failed: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✅ Destroy complete. {len(changes)} resource(s) deleted.")


@app.command("import")
def import_resource(
    resource_type: str = typer.Argument(..., help="Resource type, e.g. gitlab_runner"),
    name: str = typer.Argument(..., help="Local resource name"),
    resource_id: str = typer.Argument(..., help="Runner ID, or <project_id>:<runner_id>"),
    config: str = ConfigOption,
    state: str = StateOption,
    base_url: Optional[str] = BaseUrlOption,
    token: Optional[str] = TokenOption,
    log_level: str = LogLevelOption,
    log_format: str = LogFormatOption,
) -> None:
    """Adopt an existing runner or project runner into the state file."""
    setup_logging(log_level, log_format)
    controller, _ = _controller(config, state, base_url, token)

    try:
        with controller.provider:
            controller.import_resource(resource_type, name, resource_id)
    except Exception as e:
        typer.echo(f"❌ Import failed: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✅ Imported {resource_type}.{name} ({resource_id})")


@app.command()
def show(
    state: str = StateOption,
) -> None:
    """Display recorded state with sensitive values redacted."""
    store = StateStore(state)
    validator = SecurityValidator()

    output = {}
    for address in store.addresses():
        instance = store.get(address)
        schema = SCHEMAS.get(instance.type)
        sensitive = schema.sensitive if schema else []
        output[address] = {
            "type": instance.type,
            "id": instance.id,
            "tainted": instance.tainted,
            "attributes": validator.redact_attributes(instance.attributes, sensitive),
        }

    typer.echo(json.dumps(output, indent=2, sort_keys=True))


@app.command()
def schema(
    resource_type: Optional[str] = typer.Argument(None, help="Only show this resource type"),
) -> None:
    """Print the attribute schema of each resource type."""
    if resource_type and resource_type not in SCHEMAS:
        typer.echo(f"❌ Unknown resource type: {resource_type}", err=True)
        raise typer.Exit(1)

    selected = [resource_type] if resource_type else sorted(SCHEMAS)
    output = {name: SCHEMAS[name].describe() for name in selected}
    typer.echo(json.dumps(output, indent=2))


@app.command()
def generate_config(
    output: str = typer.Option(
        "runners.yaml",
        "--output", "-o",
        help="Output configuration file path"
    ),
    format: str = typer.Option(
        "yaml",
        "--format", "-f",
        help="Configuration format (yaml or json)"
    )
) -> None:
    """
    Generate a sample deployment configuration file.

    Tokens are left as placeholders; prefer the GITLAB_TOKEN environment
    variable over writing the API token to disk.
    """
    sample_config = {
        "provider": {
            "base_url": "https://gitlab.example.com",
            "tls_verify": True,
        },
        "resources": [
            {
                "type": "gitlab_runner",
                "name": "docker",
                "config": {
                    "registration_token": "REPLACE_WITH_REGISTRATION_TOKEN",
                    "description": "Docker runner",
                    "access_level": "not_protected",
                    "run_untagged": False,
                    "maximum_timeout": 3600,
                    "tags": ["docker", "shared"],
                },
            },
            {
                "type": "gitlab_project_enable_runner",
                "name": "docker_on_app",
                "config": {
                    "project_id": 7,
                    "runner_id": 42,
                },
            },
        ],
    }

    try:
        with open(Path(output), "w") as f:
            if format.lower() == "json":
                json.dump(sample_config, f, indent=2)
            else:
                yaml.safe_dump(sample_config, f, default_flow_style=False, indent=2, sort_keys=False)
    except OSError as e:
        typer.echo(f"❌ Failed to generate configuration: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✅ Sample configuration generated: {output}")
    typer.echo("🔧 Please update the GitLab URL, tokens and IDs before use")


def main() -> None:
    """Main entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
