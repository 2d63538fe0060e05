"""Exception hierarchy shared by the command, job and scratch layers."""

from __future__ import annotations


class SimpleMcpError(Exception):
    """Base class for errors reported back to the calling agent."""


class ConfigurationError(SimpleMcpError):
    """Invalid configuration; fatal at startup."""


class UnknownCommandError(SimpleMcpError):
    """Requested tool is not declared in the configuration."""


class MissingParameterError(SimpleMcpError):
    """A declared parameter was not supplied by the caller."""


class UnknownResourceError(SimpleMcpError):
    """Requested resource URI is not declared in the configuration."""


class AdmissionError(SimpleMcpError):
    """Async job was rejected before it was created."""


class JobAlreadyActiveError(AdmissionError):
    """Another job of the same type is still pending or running."""

    def __init__(self, job_type: str) -> None:
        super().__init__(
            f"Task '{job_type}' is already in progress. "
            "Call 'ListPendingTasks' or 'TaskStatus' to monitor it.",
        )
        self.job_type = job_type


class RegistryCapacityError(AdmissionError):
    """Registry is full of active jobs and nothing can be evicted."""


class CommandExecutionError(SimpleMcpError):
    """Synchronous command failed; carries the captured output."""

    def __init__(self, message: str, *, output: str, exit_code: int) -> None:
        super().__init__(message)
        self.output = output
        self.exit_code = exit_code


class PathSandboxError(SimpleMcpError, ValueError):
    """Path would escape the sandbox root."""


class ScratchOperationError(SimpleMcpError):
    """Filesystem operation inside the scratch space failed."""
