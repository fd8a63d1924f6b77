from functools import wraps
from pathlib import Path

import click
from loguru import logger as log

from context.config import Config, Settings
from context.logger import Logger
from djazure.artifacts import Artifacts
from djazure.errors import ConfigError, NamingError, ProvisionError
from djazure.plan import ProvisioningPlan
from djazure.preflight import Preflight
from djazure.resources import ResourceGroup
from djazure.sequencer import provision as run_provision


def plan_options(fn):
    """Options shared by every command that builds a plan."""
    fn = click.option("--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path),
                      help="Where artifacts and the summary are written.")(fn)
    fn = click.option("--region", "-r", help="Azure location, e.g. 'West Europe'.")(fn)
    fn = click.option("--environment", "-e", help="Environment name, e.g. production.")(fn)
    fn = click.option("--project", "-p", help="Base project name.")(fn)
    return fn


def handle_errors(fn):
    """Turn provisioning and config failures into a red log line and exit status 1."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            return fn(*args, **kwargs)
        except (ConfigError, NamingError) as e:
            log.error("Configuration error: {}", e)
        except ProvisionError as e:
            log.error("Provisioning aborted: {}", e)
        ctx.exit(1)

    return wrapper


def load_settings(ctx: click.Context, **overrides) -> Settings:
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if "output_dir" in overrides:
        overrides["output_dir"] = str(overrides["output_dir"])
    if ctx.obj.get("log_level"):
        overrides["log_level"] = ctx.obj["log_level"]
    settings = Config.load(ctx.obj.get("config_path"), overrides)
    Logger.init_logger(log_dir=ctx.obj.get("log_dir"), level=settings.log_level)
    return settings


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Settings file (.toml, .json, .yaml). Defaults to ./djazure.toml if present.")
@click.option("--log-level", help="Console log level (DEBUG, INFO, WARNING, ...).")
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path), help="Directory for run logs.")
@click.version_option(package_name="djazure")
@click.pass_context
def cli(ctx, config_path, log_level, log_dir):
    """
    Provision Azure infrastructure for a Django web app.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level
    ctx.obj["log_dir"] = log_dir


@cli.command()
@plan_options
@click.option("--rollback/--no-rollback", default=None,
              help="Delete already-created resources when a step fails.")
@click.pass_context
@handle_errors
def provision(ctx, project, environment, region, output_dir, rollback):
    """
    Create every resource, write the artifacts and print the summary.
    """
    settings = load_settings(ctx, project=project, environment=environment, region=region,
                             output_dir=output_dir, rollback_on_failure=rollback)
    plan = ProvisioningPlan.build(settings)
    run_provision(
        plan,
        output_dir=settings.output_path,
        summary_file=settings.summary_file,
        rollback_on_failure=settings.rollback_on_failure,
        log_level=settings.log_level,
    )


@cli.command()
@plan_options
@click.pass_context
@handle_errors
def plan(ctx, project, environment, region, output_dir):
    """
    Show the resource names a run would create. Does not touch Azure.
    """
    settings = load_settings(ctx, project=project, environment=environment, region=region,
                             output_dir=output_dir)
    built = ProvisioningPlan.build(settings)
    click.echo(f"Plan for {built.project} ({built.environment}) in {built.region}")
    width = max(len(k) for k in built.names()) + 2
    for label, name in built.names().items():
        click.echo(f"  {(label + ':').ljust(width)} {name}")
    click.echo(f"  {'Tags:'.ljust(width)} {' '.join(f'{k}={v}' for k, v in built.tags.items())}")


@cli.command()
@click.pass_context
@handle_errors
def check(ctx):
    """
    Verify the Azure CLI is installed, you are logged in and secrets can be generated.
    """
    settings = load_settings(ctx)
    Preflight.run(settings.secret_backend)
    click.echo("All prerequisites met.")


@cli.command()
@plan_options
@click.pass_context
@handle_errors
def render(ctx, project, environment, region, output_dir):
    """
    Write requirements.txt, .env.template, startup.sh and web.config without touching Azure.
    """
    settings = load_settings(ctx, project=project, environment=environment, region=region,
                             output_dir=output_dir)
    built = ProvisioningPlan.build(settings)
    for name, path in Artifacts.write_all(built, settings.output_path, log_level=settings.log_level).items():
        click.echo(f"{name}: {path}")


@cli.command()
@click.option("--resource-group", "-g", required=True, help="Resource group to delete.")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
@handle_errors
def destroy(ctx, resource_group, yes):
    """
    Delete a resource group and everything in it (cleanup after an aborted run).
    """
    load_settings(ctx)
    if not yes:
        click.confirm(f"Delete resource group '{resource_group}' and all its resources?", abort=True)
    Preflight.ensure_azure_cli()
    Preflight.ensure_logged_in()
    ResourceGroup.delete_by_name(resource_group, wait=True)
    click.echo(f"Deleted resource group {resource_group}")


if __name__ == "__main__":
    cli()
