"""
Remote command execution with timeout, classification and audit logging.
"""

import logging
import time
from typing import Optional

from rebrand_tool.core.exceptions import CommandError, CommandTimeoutError
from rebrand_tool.models.results import CommandStatus, RemoteCommandResult
from rebrand_tool.utils.logging import get_audit_logger


class CommandExecutor:
    """
    Runs shell commands over an open ``RemoteSession``.

    ``run`` never raises for a failing command; it returns a
    ``RemoteCommandResult`` with status ``failed`` or ``timed-out`` and the
    captured output. ``check`` raises ``CommandError`` carrying that output,
    for callers that treat failure as an exception.
    """

    def __init__(
        self,
        session,
        timeout: Optional[float] = None,
        log_commands: bool = False
    ):
        self.session = session
        self.timeout = timeout or getattr(session, 'command_timeout', 30.0)
        self.log_commands = log_commands
        self.logger = logging.getLogger(f"rebrand_tool.remote.{self.__class__.__name__}")

    async def run(
        self,
        command: str,
        label: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> RemoteCommandResult:
        """
        Execute a command and classify its outcome.

        Args:
            command: Shell command line
            label: Human-readable description for logs
            timeout: Per-call override of the executor timeout

        Returns:
            RemoteCommandResult with status ``ok``, ``failed`` or ``timed-out``
        """
        label = label or command.split(" ", 1)[0]
        timeout = timeout or self.timeout
        log_level = logging.INFO if self.log_commands else logging.DEBUG
        self.logger.log(log_level, f"[{label}] $ {command}")

        start = time.monotonic()
        try:
            stdout, stderr, exit_code = await self.session.exec_command(command, timeout=timeout)
        except CommandTimeoutError as e:
            result = RemoteCommandResult(
                command=command,
                stderr=str(e),
                status=CommandStatus.TIMED_OUT,
                label=label,
                duration=time.monotonic() - start
            )
            self.logger.error(f"[{label}] timed out after {timeout}s")
            self._audit(result)
            return result

        status = CommandStatus.OK if exit_code == 0 else CommandStatus.FAILED
        result = RemoteCommandResult(
            command=command,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            status=status,
            label=label,
            duration=time.monotonic() - start
        )

        if result.ok:
            self.logger.log(log_level, f"[{label}] exit 0 ({result.duration:.2f}s)")
        else:
            self.logger.warning(
                f"[{label}] exit {exit_code}: {stderr.strip() or stdout.strip()}"
            )
        if stdout.strip():
            self.logger.debug(f"[{label}] stdout: {stdout.strip()}")
        if stderr.strip():
            self.logger.debug(f"[{label}] stderr: {stderr.strip()}")

        self._audit(result)
        return result

    async def check(
        self,
        command: str,
        label: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> RemoteCommandResult:
        """
        Execute a command and raise if it did not succeed.

        Raises:
            CommandTimeoutError: If the command timed out
            CommandError: If the command exited non-zero
        """
        result = await self.run(command, label=label, timeout=timeout)
        if result.status == CommandStatus.TIMED_OUT:
            raise CommandTimeoutError(
                f"{result.label} timed out",
                label=result.label,
                stdout=result.stdout,
                stderr=result.stderr
            )
        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip() or "no output"
            raise CommandError(
                f"{result.label} failed with exit code {result.exit_code}: {detail}",
                label=result.label,
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr
            )
        return result

    def _audit(self, result: RemoteCommandResult) -> None:
        audit = get_audit_logger()
        if audit is None:
            return
        audit.log_event("remote_command", {
            'host': getattr(self.session, 'host', None),
            'label': result.label,
            'command': result.command,
            'exit_code': result.exit_code,
            'status': result.status.value,
            'duration': round(result.duration, 3),
            'stdout': result.stdout[-2000:],
            'stderr': result.stderr[-2000:],
        })
