"""
Executable-backed CSR verifier.

Runs an operator-supplied program for each signing request, passing the DER
encoded CSR on stdin. Exit status 0 approves the CSR, any other exit status
rejects it. A program that can not be started, is killed by a signal or runs
past the timeout yields no verdict at all.
"""

import asyncio
import os
from pathlib import Path

from loguru import logger

from scepserver.domain.errors import VerifierExecutionFailed, VerifierUnavailable
from scepserver.domain.signer import CSRVerifier


class ExecutableCSRVerifier(CSRVerifier):
    """
    CSR verifier delegating to an external executable.

    Attributes:
        executable: Path of the verifier program
        timeout: Seconds before the program is killed (None: no limit)
    """

    def __init__(self, executable: str | Path, timeout: float | None = None):
        """
        Initialize the verifier.

        Args:
            executable: Path of the verifier program
            timeout: Optional execution time limit in seconds

        Raises:
            VerifierUnavailable: If the path is not an executable file
        """
        path = Path(executable)
        if not path.is_file():
            raise VerifierUnavailable(f"CSR verifier {path} is not a file")
        if not os.access(path, os.X_OK):
            raise VerifierUnavailable(f"CSR verifier {path} is not executable")

        self.executable = path
        self.timeout = timeout

    async def verify(self, csr_der: bytes) -> bool:
        """Run the executable with the CSR on stdin."""
        try:
            process = await asyncio.create_subprocess_exec(
                str(self.executable),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise VerifierExecutionFailed(f"could not run CSR verifier: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(csr_der), timeout=self.timeout
            )
        except TimeoutError as e:
            await self._terminate(process)
            raise VerifierExecutionFailed(
                f"CSR verifier timed out after {self.timeout}s"
            ) from e
        except BaseException:
            # Cancelled request or shutdown: the child must not outlive it
            await self._terminate(process)
            raise

        if process.returncode < 0:
            raise VerifierExecutionFailed(
                f"CSR verifier killed by signal {-process.returncode}"
            )

        if process.returncode != 0:
            logger.info(
                f"CSR verifier rejected request: exit={process.returncode}, "
                f"stderr={stderr.decode(errors='replace').strip()!r}"
            )
            return False

        return True

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        """Kill and reap a verifier that is still running."""
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
