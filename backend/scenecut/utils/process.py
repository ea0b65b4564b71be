"""Subprocess helper shared by the external tool wrappers."""
import asyncio
from typing import List, Optional, Tuple, Type

from scenecut.config import settings
from scenecut.errors import ToolInvocationError


async def run_tool(
    cmd: List[str],
    error_cls: Type[ToolInvocationError] = ToolInvocationError,
    timeout: Optional[float] = None,
) -> Tuple[int, bytes, bytes]:
    """
    Run an external tool and collect its output.

    Args:
        cmd: Command and arguments
        error_cls: Error raised when the tool cannot be started or times out
        timeout: Seconds before the process is killed (config default if None)

    Returns:
        (returncode, stdout, stderr)
    """
    if timeout is None:
        timeout = settings.tool_timeout_seconds

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise error_cls(f"Failed to run {cmd[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise error_cls(f"{cmd[0]} timed out after {timeout:.0f}s")

    return proc.returncode, stdout, stderr
