"""Async subprocess helper shared by the docker and helm adapters."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from src.cars.core.logging import get_logger

logger = get_logger(__name__)

# Exit code reported when the binary is missing or the call timed out
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass(frozen=True)
class CommandResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def tail(self, lines: int = 20) -> str:
        """Last lines of combined output, for log entries and errors."""
        combined = "\n".join(part for part in (self.stdout, self.stderr) if part)
        return "\n".join(combined.strip().splitlines()[-lines:])


async def run_command(
    *args: str,
    cwd: Path | None = None,
    timeout: float | None = None,
    stdin: bytes | None = None,
) -> CommandResult:
    """Run a command without a shell and capture its output.

    Never raises for process failures: a missing binary or a timeout is
    reported through the returncode so callers can classify it.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd else None,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        logger.error("Command not found", command=args[0])
        return CommandResult(args=args, returncode=EXIT_NOT_FOUND, stdout="", stderr=str(e))

    try:
        out, err = await asyncio.wait_for(proc.communicate(stdin), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        logger.error("Command timed out", command=args[0], timeout=timeout)
        return CommandResult(
            args=args,
            returncode=EXIT_TIMEOUT,
            stdout="",
            stderr=f"{args[0]} timed out after {timeout}s",
        )

    return CommandResult(
        args=args,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=out.decode(errors="ignore"),
        stderr=err.decode(errors="ignore"),
    )
