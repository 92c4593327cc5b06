from logfanout._version import __version__

FAULT_MAPPING = dict(
    missing_connection_string="No telemetry connection string was provided and {env_var} is not set.",
    invalid_connection_string="Telemetry connection string is not valid: {reason}",
    telemetry_init_failed="Telemetry initialization failed: {error}",
    telemetry_send_failed="Failed to send telemetry trace: {error}",
    telemetry_not_initialized="Telemetry is not initialized and could not be initialized, trace skipped.",
    telemetry_batch_dropped="Telemetry batch of {count} item(s) dropped: {error}",
    sdk_download_failed="Failed to download telemetry SDK {package}=={version}: {error}",
    sdk_no_wheel="No wheel found on the package index for {package}=={version}.",
    sdk_load_failed="Telemetry SDK at {path} could not be loaded: {error}",
    local_write_failed="Failed to write log entry to {path}: {error}",
    console_write_failed="Failed to write log entry to console: {error}",
    unknown_color="Unknown console color '{color}' ignored.",
    rotation_failed="Failed to rotate log file {path}: {error}",
    directory_missing="Log directory {path} does not exist and creation was not requested.",
    directory_not_a_directory="Log directory path {path} exists but is not a directory.",
    directory_create_failed="Failed to create log directory {path}: {error}",
    sink_failed="The {sink} sink failed unexpectedly: {error}",
    invalid_severity="Unknown severity '{severity}'. Must be one of: {choices}",
    config_file_parse_issue="Error occurred while parsing config file ({file_path}). "
    "Make sure that the structure of the file is correct.",
    invalid_config_fallback="Invalid logfanout configuration, using defaults: {error}",
    config_file_open_issue="Error occurred while opening the config file ({file_path}).",
)

TOOL_VERSION = f"""logfanout v{__version__}"""
TOOL_USAGE = f"""Supported commands:
    - write: Write a log entry to the enabled sinks
    - status: Show log configuration and telemetry status
    - telemetry: Initialize the telemetry client and optionally send a test trace"""

MISSING_COMMAND_SLOGAN = """Usage: logfanout [OPTIONS] COMMAND [ARGS]...\nTry 'logfanout --help' for help.
\nError: Missing command."""
