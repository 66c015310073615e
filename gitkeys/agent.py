"""SSH agent bridge."""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from .exceptions import AgentError
from .system_utils import SystemType

logger = logging.getLogger(__name__)

AGENT_ENV_VARS = ("SSH_AUTH_SOCK", "SSH_AGENT_PID")


@dataclass
class AgentResult:
    """Outcome of an agent operation."""
    success: bool
    message: str

    def __bool__(self) -> bool:
        return self.success


def parse_agent_output(output: str) -> Dict[str, str]:
    """Parse ``ssh-agent -s`` output into environment variables.

    Lines look like ``SSH_AUTH_SOCK=/tmp/ssh-XXX/agent.123; export SSH_AUTH_SOCK;``.
    """
    env_vars = {}
    for line in output.splitlines():
        if "=" in line and ";" in line:
            var = line.split("=", 1)[0].strip()
            value = line.split("=", 1)[1].split(";", 1)[0].strip()
            if var in AGENT_ENV_VARS:
                env_vars[var] = value
    return env_vars


class SSHAgent:
    """Registers keys with the user's SSH agent."""

    def __init__(self, system: SystemType) -> None:
        self.system = system

    def _ssh_add(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["ssh-add", *args],
            capture_output=True,
            text=True,
            env=os.environ.copy(),
        )

    def is_running(self) -> bool:
        """Check if SSH agent is running."""
        if 'SSH_AUTH_SOCK' not in os.environ:
            return False
        try:
            result = self._ssh_add("-l")
        except OSError:
            return False
        # 1 means the agent has no keys, 2 means it cannot be reached
        return result.returncode in (0, 1)

    def ensure_running(self) -> None:
        """Start an agent if none is reachable.

        Raises:
            AgentError: If the agent cannot be started
        """
        if self.is_running():
            logger.debug("SSH agent is already running")
            return

        logger.info("Starting SSH agent")
        try:
            agent_output = subprocess.check_output(["ssh-agent", "-s"], text=True)
        except (subprocess.CalledProcessError, OSError) as e:
            raise AgentError(
                f"Failed to start SSH agent: {e}",
                details="Start it manually with: eval \"$(ssh-agent -s)\"",
            ) from e

        env_vars = parse_agent_output(agent_output)
        os.environ.update(env_vars)

        if not self.is_running():
            raise AgentError(
                "SSH agent started but is not reachable",
                details="Start it manually with: eval \"$(ssh-agent -s)\"",
            )

    def add(self, key_path: Path) -> AgentResult:
        """Add a key to the agent.

        On macOS the key is stored in the keychain when possible.
        """
        if not key_path.exists():
            return AgentResult(False, f"Key not found: {key_path}")

        try:
            self.ensure_running()
        except AgentError as e:
            logger.warning(str(e))
            return AgentResult(False, str(e))

        try:
            if self.system == SystemType.MACOS:
                result = self._ssh_add("--apple-use-keychain", str(key_path))
                if result.returncode == 0:
                    logger.info(f"Added {key_path} to agent with keychain")
                    return AgentResult(True, f"Added key to SSH agent: {key_path.name}")
                logger.debug(f"Keychain registration failed: {result.stderr.strip()}")

            result = self._ssh_add(str(key_path))
        except OSError as e:
            return AgentResult(False, f"Failed to add key to SSH agent: {e}")

        if result.returncode == 0:
            logger.info(f"Added {key_path} to agent")
            return AgentResult(True, f"Added key to SSH agent: {key_path.name}")

        message = f"Failed to add key to SSH agent: {result.stderr.strip() or result.returncode}"
        logger.warning(message)
        return AgentResult(False, message)

    def remove(self, key_path: Path) -> AgentResult:
        """Remove a key from the agent."""
        if not self.is_running():
            return AgentResult(False, "SSH agent is not running")

        try:
            result = self._ssh_add("-d", str(key_path))
        except OSError as e:
            return AgentResult(False, f"Failed to remove key from SSH agent: {e}")

        if result.returncode == 0:
            logger.info(f"Removed {key_path} from agent")
            return AgentResult(True, f"Removed key from SSH agent: {key_path.name}")
        return AgentResult(False, f"Key was not in SSH agent: {result.stderr.strip()}")

    def list_loaded(self) -> List[str]:
        """List keys loaded in the agent, one ``ssh-add -l`` line each."""
        if 'SSH_AUTH_SOCK' not in os.environ:
            return []
        try:
            result = self._ssh_add("-l")
        except OSError:
            return []
        if result.returncode != 0:
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]
