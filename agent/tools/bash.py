"""
Shell command tool.

Commands run through the user's shell in the session's working directory.
Approval is per command prefix (`Bash(git commit:*)`) or per exact command.
"""

import asyncio
import logging
import os
import shlex
import signal

from pydantic import BaseModel, Field

from core.abort import race_abort
from core.constants import (
    DEFAULT_BASH_TIMEOUT_MS,
    MAX_BASH_OUTPUT_LENGTH,
    MAX_BASH_TIMEOUT_MS,
)
from core.exceptions import AbortError
from core.permissions.commands import split_command
from core.permissions.patterns import exact_permission_key, prefix_permission_key
from core.tools import Tool, ToolResult, ToolUseContext, ValidationResult

logger = logging.getLogger(__name__)

# Network fetchers and browsers that must go through dedicated tools
BANNED_COMMANDS = frozenset(
    {
        "alias",
        "curl",
        "curlie",
        "wget",
        "axel",
        "aria2c",
        "nc",
        "telnet",
        "lynx",
        "w3m",
        "links",
        "httpie",
        "xh",
        "http-prompt",
        "chrome",
        "firefox",
        "safari",
    }
)

ABORTED_NOTE = "<error>Command was aborted before completion</error>"

PROMPT = f"""Executes a given bash command with an optional timeout.

Before executing the command:
1. If the command creates new directories or files, first use the LS tool to verify the parent directory exists.
2. Some commands are banned for security reasons ({", ".join(sorted(BANNED_COMMANDS))}). Using one returns an error explaining the restriction.

Usage notes:
- The command argument is required.
- You can specify an optional timeout in milliseconds (up to {MAX_BASH_TIMEOUT_MS}ms).
- If the output exceeds {MAX_BASH_OUTPUT_LENGTH} characters, output will be truncated before being returned to you.
- Avoid search commands like `find` and `grep`; use the GrepTool, GlobTool or Agent tools instead. Avoid `cat`, `head`, `tail` and `ls`; use the View and LS tools instead.
- When issuing multiple commands, join them with ';' or '&&' rather than newlines.
- Keep the working directory stable by using absolute paths instead of `cd`.
"""


class BashInput(BaseModel):
    command: str = Field(description="The command to execute")
    timeout: int | None = Field(
        default=None,
        gt=0,
        le=MAX_BASH_TIMEOUT_MS,
        description=f"Optional timeout in milliseconds (max {MAX_BASH_TIMEOUT_MS})",
    )


def kill_process_group(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started; they share its session."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def truncate_output(content: str) -> str:
    """Keep the head and tail of output longer than MAX_BASH_OUTPUT_LENGTH."""
    if len(content) <= MAX_BASH_OUTPUT_LENGTH:
        return content
    half = MAX_BASH_OUTPUT_LENGTH // 2
    head, tail = content[:half], content[-half:]
    dropped_lines = content[half:-half].count("\n") + 1
    return f"{head}\n\n... [{dropped_lines} lines truncated] ...\n\n{tail}"


def _first_word(command: str) -> tuple[str, list[str]]:
    try:
        words = shlex.split(command)
    except ValueError:
        words = command.split()
    if not words:
        return "", []
    return words[0], words[1:]


class BashTool(Tool):
    name = "Bash"
    input_model = BashInput
    supports_prefix_permissions = True

    async def description(self) -> str:
        return "Executes shell commands on your computer"

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return False

    def needs_permissions(self, input: BashInput) -> bool:
        return True

    def permission_command(self, input: BashInput) -> str:
        return input.command

    def permission_key(self, input: BashInput, prefix: str | None = None) -> str:
        if prefix:
            return prefix_permission_key(self.name, prefix)
        return exact_permission_key(self.name, input.command)

    def normalize_input(self, input: BashInput, context: ToolUseContext) -> BashInput:
        cwd = context.options.cwd or os.getcwd()
        command = input.command.replace(f"cd {cwd} && ", "", 1)
        return input.model_copy(update={"command": command})

    async def validate_input(
        self, input: BashInput, context: ToolUseContext
    ) -> ValidationResult:
        cwd = os.path.realpath(context.options.cwd or os.getcwd())
        for subcommand in split_command(input.command):
            base, args = _first_word(subcommand)
            if base.lower() in BANNED_COMMANDS:
                return ValidationResult(
                    result=False,
                    message=f"Command '{base}' is not allowed for security reasons",
                )
            if base == "cd" and args:
                target = os.path.realpath(os.path.join(cwd, os.path.expanduser(args[0])))
                if target != cwd and not target.startswith(cwd + os.sep):
                    return ValidationResult(
                        result=False,
                        message=(
                            f"ERROR: cd to '{target}' was blocked. For security, you may only "
                            f"change directories to children of the working directory ({cwd})."
                        ),
                    )
        return ValidationResult(result=True)

    def render_tool_use_message(self, input: BashInput, verbose: bool = False) -> str:
        command = input.command
        if not verbose and "\n" in command:
            command = command.splitlines()[0] + " …"
        return command

    async def call(self, input: BashInput, context: ToolUseContext, can_use_tool=None):
        cwd = context.options.cwd or os.getcwd()
        timeout_seconds = (input.timeout or DEFAULT_BASH_TIMEOUT_MS) / 1000

        process = await asyncio.create_subprocess_shell(
            input.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            start_new_session=True,
        )
        interrupted = False
        try:
            async with asyncio.timeout(timeout_seconds):
                stdout_bytes, stderr_bytes = await race_abort(
                    process.communicate(), context.signal
                )
        except TimeoutError:
            logger.info("Command timed out after %.0fs: %s", timeout_seconds, input.command)
            kill_process_group(process)
            await process.wait()
            stdout_bytes, stderr_bytes = b"", f"Command timed out after {timeout_seconds:.0f}s".encode()
            interrupted = True
        except AbortError:
            kill_process_group(process)
            await process.wait()
            raise

        stdout = truncate_output(stdout_bytes.decode("utf-8", errors="replace").strip())
        stderr = truncate_output(stderr_bytes.decode("utf-8", errors="replace").strip())
        if process.returncode and not interrupted:
            stderr = f"{stderr}\nExit code {process.returncode}".strip()

        data = {
            "stdout": stdout,
            "stderr": stderr,
            "exit_code": process.returncode,
            "interrupted": interrupted,
        }
        yield ToolResult(data=data, result_for_assistant=self.render_result_for_assistant(data))

    def render_result_for_assistant(self, data: dict) -> str:
        error_message = data["stderr"].strip()
        if data["interrupted"]:
            error_message = f"{error_message}\n{ABORTED_NOTE}".strip()
        stdout = data["stdout"].strip()
        separator = "\n" if stdout and error_message else ""
        return f"{stdout}{separator}{error_message}"
