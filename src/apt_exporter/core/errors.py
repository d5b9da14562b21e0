"""Module defining custom exceptions for the APT exporter."""

from __future__ import annotations

from typing import Any, Self

# Exit Codes
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
EXIT_TRANSIENT_ERROR = 3


class ExporterError(Exception):
    """Base exception class with context propagation.

    All exceptions in the exporter should inherit from this class.
    Context is a dictionary that accumulates relevant information
    as the exception propagates up the call stack.

    Example:
        raise ExporterError("An error occurred", context={"kind": "installed"})

        # Or with context propagation
        try:
            ...
        except ExporterError as e:
            raise e.with_context(phase="startup")
    """
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def with_context(self, **new_context: Any) -> Self:
        """Returns the exception with updated context.

        Args:
            **new_context: Additional context to add to the exception.

        Returns:
            The same instance with merged context.
        """
        self.context.update(new_context)
        return self

    def __str__(self) -> str:
        """String representation of the exception including context."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


class TransientError(ExporterError):
    """Errors that may go away on the next attempt.

    The exporter never retries by itself: the next package operation or
    periodic update will trigger a fresh refresh.
    """
    pass


class UserError(ExporterError):
    """Errors caused by invalid flags or configuration.

    These should not be retried without correction.
    """
    pass


class SystemError(ExporterError):
    """Errors due to system-level issues.

    These errors indicate problems with the host, such as missing paths,
    permission issues or ports already in use.
    """
    pass


## Specific Exceptions ##

class AptCommandError(TransientError):
    """APT command could not be run or returned a non-zero exit code.

    Typically indicates:
        - dpkg lock held by another process
        - Broken package database
        - apt binary missing
    """
    def __init__(
        self,
        message: str | None = None,
        command: str | None = None,
        returncode: int | None = None,
        error: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        """Initialise AptCommandError with detailed context.

        Args:
            message: Optional custom error message.
            command: The command that was executed.
            returncode: The exit code returned by the command.
            error: The error output from the command.
            context: Additional context information.
        """
        ctx = context or {}
        if command:
            ctx["command"] = command
        if returncode is not None:
            ctx["returncode"] = returncode
        if error:
            ctx["error"] = error

        if message is None:
            message = f"APT command failed with exit code {returncode if returncode is not None else 'unknown'}"

        super().__init__(message, context=ctx)


class AptTimeoutError(TransientError):
    """APT command timed out."""
    def __init__(
        self,
        message: str | None = None,
        command: str | None = None,
        timeout: float | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if command:
            ctx["command"] = command
        if timeout is not None:
            ctx["timeout"] = timeout

        if message is None:
            message = f"APT command timed out after {timeout or 'unknown'}s"

        super().__init__(message, context=ctx)


class ConfigError(UserError):
    """A flag or configuration value is invalid."""
    def __init__(
        self,
        message: str | None = None,
        option: str | None = None,
        value: Any = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if option:
            ctx["option"] = option
        if value is not None:
            ctx["value"] = value

        if message is None:
            message = f"Invalid value for {option or 'option'}"

        super().__init__(message, context=ctx)


class WatchError(SystemError):
    """A path could not be watched or polled.

    Typically indicates:
        - The path does not exist (APT never ran on this host)
        - Permission denied on the path or its parent directory
    """
    def __init__(
        self,
        message: str | None = None,
        path: str | None = None,
        error: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if path:
            ctx["path"] = path
        if error:
            ctx["error"] = error

        if message is None:
            message = f"Cannot watch {path or 'path'}"

        super().__init__(message, context=ctx)


class ListenError(SystemError):
    """The HTTP listener could not be bound."""
    def __init__(
        self,
        message: str | None = None,
        address: str | None = None,
        error: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if address:
            ctx["address"] = address
        if error:
            ctx["error"] = error

        if message is None:
            message = f"Cannot listen on {address or 'address'}"

        super().__init__(message, context=ctx)


class SnapshotNotFoundError(SystemError):
    """No refresh for the requested listing has succeeded yet."""
    def __init__(
        self,
        message: str | None = None,
        kind: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if kind:
            ctx["kind"] = kind

        if message is None:
            message = f"Cache item with key '{kind or 'unknown'}' does not exist"

        super().__init__(message, context=ctx)


# CLI Error Message Templates

ERROR_TEMPLATES = {
    AptTimeoutError: (
        "⚠️ Command timed out after {timeout}s: {command}\n"
        "   Another APT process may be holding the lock"
    ),
    AptCommandError: (
        "⚠️ APT command failed: {command}\n"
        "   Error: {error}"
    ),
    ConfigError: (
        "❌ Invalid {option}: {value}\n"
        "   {message}"
    ),
    WatchError: (
        "⚠️ Cannot watch {path}: {error}\n"
        "   Fix: Check that APT is installed and the path is readable"
    ),
    ListenError: (
        "⚠️ Cannot listen on {address}: {error}\n"
        "   Fix: Choose another --web.listen-address or stop the process using it"
    ),
    TransientError: (
        "⚠️ Temporary failure: {message}\n"
        "   This may resolve itself - try again in a moment"
    ),
    UserError: (
        "❌ {message}"
    ),
    SystemError: (
        "⚠️ System error: {message}\n"
        "   Please check your system configuration and try again"
    ),
    ExporterError: (
        "❌ {message}"
    ),
}


def format_error_message(error: ExporterError) -> str:
    """Formats an error message for CLI display based on the error type.

    Args:
        error: The ExporterError instance to format.

    Returns:
        A formatted string message for CLI display.
    """
    template = ERROR_TEMPLATES.get(type(error), ERROR_TEMPLATES[ExporterError])
    try:
        return template.format(message=error.message, **error.context)
    except KeyError:
        return f"❌ {error.message}"


def exit_code_for(error: Exception) -> int:
    """Map an exception to the process exit code."""
    if isinstance(error, TransientError):
        return EXIT_TRANSIENT_ERROR
    if isinstance(error, SystemError):
        return EXIT_SYSTEM_ERROR
    if isinstance(error, UserError):
        return EXIT_USER_ERROR
    if isinstance(error, ExporterError):
        return EXIT_USER_ERROR
    return EXIT_SYSTEM_ERROR
