from .task_console import ConsoleTaskSink

__all__ = ["ConsoleTaskSink"]
