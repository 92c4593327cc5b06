import sys

import click

from logfanout.cli import CONTEXT_SETTINGS, Environment, pass_environment
from logfanout.data_classes.log_entry import Severity
from logfanout.dispatcher import LogDispatcher


@click.command(context_settings=CONTEXT_SETTINGS)
@click.argument("message", nargs=-1, required=True)
@click.option(
    "--severity",
    type=click.Choice([level.label for level in Severity], case_sensitive=False),
    default=Severity.INFORMATION.label,
    show_default=True,
    help="Severity written to the log file and sent to telemetry.",
)
@click.option("--fg", "foreground_color", metavar="", help="Console foreground color, e.g. red or DarkYellow.")
@click.option("--bg", "background_color", metavar="", help="Console background color.")
@click.option("--no-newline", is_flag=True, help="Do not end the entry with a newline.")
@click.option("--source", "source_name", metavar="", help="Source name used for the log file and telemetry.")
@click.option("--no-console", is_flag=True, help="Skip the console sink for this entry.")
@click.option("--no-local", is_flag=True, help="Skip the local file sink for this entry.")
@click.option("--no-telemetry", is_flag=True, help="Skip the telemetry sink for this entry.")
@click.option(
    "-P",
    "--property",
    "properties",
    multiple=True,
    metavar="",
    help="Extra telemetry property as key=value. Can be repeated.",
)
@click.pass_context
@pass_environment
def cli(environment: Environment, context: click.Context, message, no_console, no_local, no_telemetry, **kwargs):
    """Write MESSAGE to every enabled sink

    Examples:
        logfanout write "Import finished"
        logfanout write --severity Error --fg red Import failed
        logfanout write --no-telemetry -P run=42 "Nightly run"
    """
    environment.set_parameters(context)
    log_context = environment.log_context
    if no_console:
        log_context.disable_console()
    if no_local:
        log_context.disable_local()
    if no_telemetry:
        log_context.disable_telemetry()

    properties = {}
    for item in environment.properties:
        if "=" not in item:
            environment.elog(f"Invalid property '{item}', expected key=value.")
            sys.exit(1)
        key, value = item.split("=", 1)
        properties[key.strip()] = value

    results = LogDispatcher(log_context).write(
        *message,
        severity=environment.severity,
        foreground_color=environment.foreground_color,
        background_color=environment.background_color,
        no_newline=environment.no_newline,
        source_name=environment.source_name or "logfanout",
        properties=properties,
    )
    switches = log_context.switches
    enabled = dict(
        console=switches.console_enabled, local=switches.local_enabled, telemetry=switches.telemetry_enabled
    )
    failed = [sink for sink, is_enabled in enabled.items() if is_enabled and not results[sink]]
    if failed:
        environment.elog(f"Sinks that did not accept the entry: {', '.join(failed)}")
    if any(enabled.values()) and not any(results.values()):
        sys.exit(1)
