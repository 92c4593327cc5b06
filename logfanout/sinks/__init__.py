from logfanout.sinks.console_sink import ConsoleSink
from logfanout.sinks.local_sink import LocalSink
from logfanout.sinks.rotation import RotationManager

__all__ = ["ConsoleSink", "LocalSink", "RotationManager"]
