import json

import click
from humanfriendly import format_size

from logfanout.cli import CONTEXT_SETTINGS, Environment, pass_environment


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("--json", "as_json", is_flag=True, help="Print the status as JSON.")
@click.pass_context
@pass_environment
def cli(environment: Environment, context: click.Context, as_json: bool):
    """Show the log configuration and telemetry status"""
    environment.set_parameters(context)
    log_context = environment.log_context
    log_config = log_context.get_log_config()
    telemetry = log_context.get_telemetry_status()

    if as_json:
        click.echo(json.dumps({"log_config": log_config.to_dict(), "telemetry": telemetry.to_dict()}, indent=2))
        return

    def on_off(enabled: bool) -> str:
        return click.style("enabled", fg="green") if enabled else click.style("disabled", fg="yellow")

    click.echo("Sinks:")
    click.echo(f"  console:   {on_off(log_config.console_enabled)}")
    click.echo(f"  local:     {on_off(log_config.local_enabled)}")
    click.echo(f"  telemetry: {on_off(log_config.telemetry_enabled)}")
    click.echo("Local files:")
    click.echo(f"  directory: {log_config.directory}")
    click.echo(f"  extension: {log_config.file_extension}")
    click.echo(f"  encoding:  {log_config.encoding}")
    click.echo(f"  rotate at: {format_size(log_config.max_file_size_bytes, binary=True)}")
    click.echo("Telemetry:")
    click.echo(f"  initialized: {telemetry.initialized}")
    click.echo(f"  sdk:         {telemetry.sdk_version} ({'loaded' if telemetry.sdk_loaded else 'not loaded'})")
    if telemetry.connection_string:
        click.echo(f"  connection:  {telemetry.connection_string}")
