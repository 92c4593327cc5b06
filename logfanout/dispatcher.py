"""
Log Dispatcher - fans one log call out to the console, local and telemetry sinks

Sinks are called in that fixed order, each only when its switch is on. Every
branch is guarded separately so that a failing sink never keeps the others
from running, and the dispatcher itself never raises.

Usage:
    dispatcher = LogDispatcher(LogContext())
    dispatcher.write("Import", "finished", severity=Severity.ERROR, foreground_color="red")
"""

from beartype.typing import Any, Callable, Dict, Optional

from logfanout.caller import resolve_source_name
from logfanout.constants import FAULT_MAPPING
from logfanout.context import LogContext
from logfanout.data_classes.log_entry import Severity
from logfanout.diagnostics import get_logger
from logfanout.sinks.console_sink import ConsoleSink
from logfanout.sinks.local_sink import LocalSink

logger = get_logger("logfanout.dispatcher")


class LogDispatcher:
    def __init__(self, context: LogContext):
        self.context = context
        self.console = ConsoleSink(context.switches, stream=context.console_stream)
        self.local = LocalSink(context.log_config, context.switches)

    @staticmethod
    def part_text(part) -> str:
        """str() of one message part, repr() when str() raises"""
        try:
            return str(part)
        except Exception:
            try:
                return repr(part)
            except Exception:
                return f"<unprintable {type(part).__name__}>"

    @classmethod
    def join_message(cls, message_parts) -> str:
        return " ".join(cls.part_text(part) for part in message_parts)

    @staticmethod
    def _guarded(sink: str, action: Callable[[], Any]) -> bool:
        try:
            return bool(action())
        except Exception as e:
            logger.warning(FAULT_MAPPING["sink_failed"].format(sink=sink, error=e))
            return False

    def write(
        self,
        *message_parts,
        severity=Severity.INFORMATION,
        foreground_color: Optional[str] = None,
        background_color: Optional[str] = None,
        no_newline: bool = False,
        source_name: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, bool]:
        """
        Write one message to every enabled sink.

        Args:
            *message_parts: joined with single spaces into the message
            severity: Severity member or its name ("Error", "warning", ...)
            foreground_color: console only
            background_color: console only
            no_newline: suppress the trailing newline on console and file
            source_name: overrides caller identification
            properties: extra telemetry properties

        Returns:
            Mapping of sink name to whether it accepted the entry
        """
        message = self.join_message(message_parts)
        try:
            severity = Severity.parse(severity)
        except ValueError as e:
            logger.warning(str(e))
            severity = Severity.INFORMATION
        switches = self.context.switches
        results = {"console": False, "local": False, "telemetry": False}

        if switches.console_enabled:
            results["console"] = self._guarded(
                "console", lambda: self.console.write(message, foreground_color, background_color, no_newline)
            )

        if switches.local_enabled:
            results["local"] = self._guarded(
                "local", lambda: self.local.write(message, severity, no_newline, source_name=source_name)
            )

        if switches.telemetry_enabled:
            results["telemetry"] = self._guarded(
                "telemetry",
                lambda: self.context.telemetry.send_trace(
                    message, severity, self.enrichment_properties(severity, source_name, properties)
                ),
            )

        return results

    @staticmethod
    def enrichment_properties(
        severity: Severity, source_name: Optional[str] = None, properties: Optional[Dict[str, Any]] = None
    ) -> Dict[str, str]:
        """Standard properties every dispatched trace carries, on top of the caller's own"""
        enriched = {str(key): str(value) for key, value in (properties or {}).items()}
        enriched.setdefault("sourceName", resolve_source_name(source_name))
        # local label, the remote record carries the mapped severity
        enriched.setdefault("severity", severity.label)
        return enriched

    def verbose(self, *message_parts, **kwargs):
        return self.write(*message_parts, severity=Severity.VERBOSE, **kwargs)

    def debug(self, *message_parts, **kwargs):
        return self.write(*message_parts, severity=Severity.DEBUG, **kwargs)

    def info(self, *message_parts, **kwargs):
        return self.write(*message_parts, severity=Severity.INFORMATION, **kwargs)

    def warning(self, *message_parts, **kwargs):
        return self.write(*message_parts, severity=Severity.WARNING, **kwargs)

    def error(self, *message_parts, **kwargs):
        return self.write(*message_parts, severity=Severity.ERROR, **kwargs)

    def critical(self, *message_parts, **kwargs):
        return self.write(*message_parts, severity=Severity.CRITICAL, **kwargs)
