"""SSH connection probes."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .keystore import KeyEntry

logger = logging.getLogger(__name__)

# Git hosts exit 1 after a successful authentication because no shell is granted
SUCCESS_EXIT_CODES = (0, 1)


@dataclass
class ConnectionResult:
    """Outcome of a connection probe."""
    success: bool
    raw_output: str
    exit_code: Optional[int] = None
    key_name: Optional[str] = None


def is_success(exit_code: int) -> bool:
    return exit_code in SUCCESS_EXIT_CODES


class ConnectionTester:
    """Runs ``ssh -T`` authentication probes."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def build_command(self, target: str, key_path: Optional[Path] = None) -> List[str]:
        cmd = ["ssh", "-T"]
        if key_path is not None:
            cmd.extend(["-i", str(key_path)])
        cmd.extend(["-o", f"ConnectTimeout={max(1, int(self.timeout))}", target])
        return cmd

    def test(self, target: str, key_path: Optional[Path] = None) -> ConnectionResult:
        """Probe a host, optionally pinned to one key.

        Args:
            target: ``user@host`` or a host alias
            key_path: Private key to use instead of the default identity
        """
        key_name = key_path.name if key_path is not None else None
        cmd = self.build_command(target, key_path)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout + 5,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Connection probe to {target} timed out")
            return ConnectionResult(False, f"Connection to {target} timed out", key_name=key_name)
        except OSError as e:
            logger.warning(f"Could not run ssh: {e}")
            return ConnectionResult(False, f"Could not run ssh: {e}", key_name=key_name)

        output = (result.stdout or "").strip()
        success = is_success(result.returncode)
        logger.info(f"Probe {target} key={key_name} exit={result.returncode}")
        return ConnectionResult(success, output, exit_code=result.returncode, key_name=key_name)

    def test_all(
        self, target: str, entries: Iterable[KeyEntry]
    ) -> Tuple[bool, List[ConnectionResult]]:
        """Probe a host once per key.

        Returns:
            Tuple of (at least one key succeeded, results)
        """
        results = [self.test(target, entry.private_path) for entry in entries]
        return any(r.success for r in results), results
