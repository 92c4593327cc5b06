import sys

import click

from logfanout.cli import CONTEXT_SETTINGS, Environment, pass_environment
from logfanout.settings import CONNECTION_STRING_ENV_VAR


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--connection-string",
    metavar="",
    envvar=CONNECTION_STRING_ENV_VAR,
    help=f"Application Insights connection string. Defaults to ${CONNECTION_STRING_ENV_VAR}.",
)
@click.option("--progress/--no-progress", default=True, help="Show a progress bar while downloading the SDK.")
@click.option("--send-test", "test_message", metavar="", help="Send MESSAGE as a test trace after initializing.")
@click.pass_context
@pass_environment
def cli(environment: Environment, context: click.Context, connection_string, progress, test_message):
    """Initialize the telemetry client, downloading the SDK if needed

    Examples:
        logfanout telemetry --connection-string "InstrumentationKey=..."
        logfanout telemetry --send-test "hello from logfanout"
    """
    environment.set_parameters(context)
    telemetry = environment.log_context.telemetry

    environment.log("Initializing telemetry...")
    if not telemetry.init(connection_string, show_progress=progress and not environment.silent):
        environment.elog("Telemetry could not be initialized. See the warnings above for details.")
        sys.exit(1)

    status = telemetry.status()
    environment.log(f"Telemetry initialized (SDK {status.sdk_version}, {status.connection_string})")

    if test_message:
        if not telemetry.send_trace(test_message, properties={"test": "true"}, source_name="logfanout"):
            environment.elog("Test trace could not be sent.")
            sys.exit(1)
        environment.log("Test trace sent.")
