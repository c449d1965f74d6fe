"""
Shell Command Tool
==================

Runs a shell command and reports its exit code and output.

Every command is validated before anything is executed. Commands that are
malformed or match the denylist are refused with a Rejected result; the
tool fails closed and never runs them.

Denylisted operations include:
- recursive deletion of the filesystem root or home directory
- filesystem formatting (mkfs) and raw writes to block devices
- fork bombs
- shutdown / reboot / halt / poweroff
- privilege escalation (sudo, su)
- recursive chmod/chown on /
- piping downloaded scripts straight into a shell
"""

import asyncio
import posixpath
import re
import shlex

from agentcore.errors import Rejected
from agentcore.tools import Tool, ToolResult
from agentcore.utils.config import get_config
from agentcore.utils.logger import Logger

logger = Logger("ShellTool")

MAX_COMMAND_LENGTH = 4096

_DANGEROUS_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\bmkfs(\.\w+)?\b"), "filesystem formatting"),
    (re.compile(r"\bdd\b[^|;&]*\bof=/dev/"), "raw write to a device"),
    (re.compile(r">\s*/dev/(sd|hd|nvme|vd|xvd|disk)\w*"), "write to a block device"),
    (re.compile(r":\s*\(\s*\)\s*\{.*:\s*\|\s*:.*\}"), "fork bomb"),
    (re.compile(r"\b(shutdown|reboot|halt|poweroff)\b"), "system power control"),
    (re.compile(r"(^\s*|[;&|]\s*)(sudo|su)\b"), "privilege escalation"),
    (re.compile(r"\bch(mod|own)\s+(-[a-zA-Z]*R[a-zA-Z]*\s+)\S*\s*/(\s|$)"), "recursive permission change on /"),
    (re.compile(r"\b(curl|wget)\b[^|]*\|\s*(ba|z|k)?sh\b"), "piping a download into a shell"),
]


def validate_command(command: object) -> str | None:
    """
    Check that a command is well formed.

    Returns:
        A reason string if the command is invalid, else None
    """
    if not isinstance(command, str):
        return "command must be a string"
    if not command.strip():
        return "command cannot be empty"
    if "\x00" in command:
        return "command contains a NUL byte"
    if len(command) > MAX_COMMAND_LENGTH:
        return f"command exceeds {MAX_COMMAND_LENGTH} characters"
    return None


_SHELL_OPERATOR_CHARS = set("();<>|&")
_HOME_ALIASES = ("~", "$HOME", "${HOME}")


def _command_segments(command: str) -> list[list[str]]:
    """
    Split a command line into simple commands at shell operators.

    Raises:
        ValueError: If the quoting is unbalanced
    """
    lexer = shlex.shlex(command, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    segments: list[list[str]] = [[]]
    for token in lexer:
        if set(token) <= _SHELL_OPERATOR_CHARS:
            segments.append([])
        else:
            segments[-1].append(token)
    return [segment for segment in segments if segment]


def _is_protected_target(argument: str) -> bool:
    """True for the filesystem root or the home directory, in any spelling."""
    path = argument[:-1] if argument.endswith("*") else argument
    if not path:
        return False
    return posixpath.normpath(path).rstrip("/") in ("", *_HOME_ALIASES)


def _recursive_rm_targets(args: list[str]) -> list[str]:
    """Operands of an rm invocation, or [] when it is not recursive."""
    recursive = False
    targets = []
    options_done = False
    for arg in args:
        if options_done or arg == "-" or not arg.startswith("-"):
            targets.append(arg)
        elif arg == "--":
            options_done = True
        elif arg.startswith("--"):
            # GNU rm accepts unambiguous prefixes such as --rec
            recursive = recursive or (len(arg) > 2 and "--recursive".startswith(arg))
        elif "r" in arg or "R" in arg:
            recursive = True
    return targets if recursive else []


def _deletes_root(command: str) -> bool:
    for segment in _command_segments(command):
        for index, token in enumerate(segment):
            if posixpath.basename(token) == "rm":
                targets = _recursive_rm_targets(segment[index + 1:])
                if any(_is_protected_target(target) for target in targets):
                    return True
                break
    return False


def dangerous_reason(command: str) -> str | None:
    """Name of the denylisted operation a command performs, or None."""
    try:
        if _deletes_root(command):
            return "recursive deletion of a root directory"
    except ValueError:
        return "unbalanced quoting"

    for pattern, reason in _DANGEROUS_PATTERNS:
        if pattern.search(command):
            return reason
    return None


def _truncate(output: str, limit: int) -> str:
    if len(output) <= limit:
        return output
    return output[:limit] + f"\n... [truncated {len(output) - limit} characters]"


async def _run_shell_command(params: dict) -> ToolResult:
    """
    Execute a validated shell command.

    Rejected commands never reach the shell.
    """
    command = params.get("command")

    problem = validate_command(command)
    if problem is None:
        problem = dangerous_reason(command)
    if problem is not None:
        logger.warning(f"Rejected command: {problem}")
        return ToolResult.failure(Rejected(f"Command rejected: {problem}", "shell_command"))

    config = get_config().shell
    timeout = params.get("timeout") or config.timeout_seconds

    logger.info(f"Executing command: {command}")
    process = await asyncio.create_subprocess_shell(
        command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning(f"Command timed out after {timeout}s")
        return ToolResult.failure(
            f"Command timed out after {timeout} seconds",
            data={"command": command, "exit_code": None},
        )

    exit_code = process.returncode
    data = {
        "command": command,
        "exit_code": exit_code,
        "stdout": _truncate(stdout.decode("utf-8", errors="replace"), config.max_output_chars),
        "stderr": _truncate(stderr.decode("utf-8", errors="replace"), config.max_output_chars),
    }

    if exit_code != 0:
        return ToolResult(
            success=False,
            data=data,
            error=f"Command exited with status {exit_code}",
            error_type="CommandFailed",
        )
    return ToolResult.ok(data)


shell_command_tool = Tool(
    name="shell_command",
    description=(
        "Run a shell command on the host and return its exit code, stdout and stderr. "
        "Destructive or privileged commands are refused."
    ),
    parameters={
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "The command line to execute"
            },
            "timeout": {
                "type": "integer",
                "minimum": 1,
                "description": "Seconds to wait before the command is killed"
            }
        },
        "required": ["command"]
    },
    execute=_run_shell_command
)
