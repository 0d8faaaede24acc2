"""
Exception types raised by the pipeline stages.
"""


class PipelineError(RuntimeError):
    """A pipeline stage failed and the run must be aborted."""


class CommandError(PipelineError):
    """An external command (ffmpeg/ffprobe) exited with a non-zero code."""

    def __init__(self, cmd: list[str], returncode: int, output: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed with code {returncode}: {cmd[0] if cmd else '?'}")


class MalformedModelOutput(PipelineError):
    """A language model response did not have the expected shape."""


class TranscriptionError(PipelineError):
    """Speech-to-text produced no usable transcript."""


class NoScenesFound(PipelineError):
    """Scene planning ended without a single usable clip."""


class WorkdirBusy(PipelineError):
    """Another run holds the lock on the working directory."""
