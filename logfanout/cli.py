import sys
from pathlib import Path

import click

import logfanout
from logfanout.constants import MISSING_COMMAND_SLOGAN, TOOL_USAGE, TOOL_VERSION
from logfanout.context import LogContext

CONTEXT_SETTINGS = dict(auto_envvar_prefix="LOGFANOUT")

logfanout_folder = Path(__file__).parent
cmd_folder = logfanout_folder / "commands/"


class Environment:
    def __init__(self):
        self.config = None
        self.log_dir = None
        self.silent = False
        self._log_context = None

    @property
    def log_context(self) -> LogContext:
        if self._log_context is None:
            self._log_context = logfanout.configure(self.config, log_directory=self.log_dir)
        return self._log_context

    def log(self, msg: str, new_line=True, *args):
        """Logs a message to stdout only if silent mode is disabled."""
        if not self.silent:
            if args:
                msg %= args
            click.echo(msg, file=sys.stdout, nl=new_line)

    @staticmethod
    def elog(msg: str, new_line=True, *args):
        """Logs a message to stderr."""
        if args:
            msg %= args
        click.echo(msg, file=sys.stderr, nl=new_line)

    def set_parameters(self, context: click.Context):
        for param, value in context.params.items():
            setattr(self, param, value)


pass_environment = click.make_pass_decorator(Environment, ensure=True)


class LogFanoutCLI(click.Group):
    def __init__(self, *args, **kwargs):
        # invoke_without_command=True to print the usage when started without a command
        click.Group.__init__(self, invoke_without_command=True, *args, **kwargs)

    def list_commands(self, context: click.Context):
        commands = []
        for filename in cmd_folder.iterdir():
            if filename.name.endswith(".py") and filename.name.startswith("cmd_"):
                commands.append(filename.name[4:-3])
        commands.sort()
        return commands

    def get_command(self, context: click.Context, name: str):
        try:
            mod = __import__(f"logfanout.commands.cmd_{name}", None, None, ["cli"])
        except ImportError:
            return None
        return mod.cli


@click.command(cls=LogFanoutCLI, context_settings=CONTEXT_SETTINGS)
@click.pass_context
@pass_environment
@click.version_option(logfanout.__version__, message=TOOL_VERSION)
@click.option(
    "-c",
    "--config",
    type=click.Path(dir_okay=False),
    metavar="",
    help="Optional path to a logfanout YAML configuration file.",
)
@click.option(
    "-d",
    "--log-dir",
    type=click.Path(file_okay=False),
    metavar="",
    help="Directory for local log files.",
)
@click.option("-s", "--silent", is_flag=True, default=False, help="Silence informational stdout output.")
def cli(environment: Environment, context: click.Context, *args, **kwargs):
    """logfanout - write log entries to console, local files and telemetry"""
    if not context.invoked_subcommand:
        if not sys.argv[1:]:
            click.echo(TOOL_USAGE)
            sys.exit(0)
        click.echo(MISSING_COMMAND_SLOGAN)
        sys.exit(2)

    environment.set_parameters(context)
