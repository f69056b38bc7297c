"""Built-in recording dumpers."""

from blackbox.recorder.stacks import StackDumpRecorder

__all__ = ["StackDumpRecorder"]
