"""Dangerous command detection for permission prompts."""

from .commands import split_command

# Sub-commands containing these are flagged as system-destroying
DANGEROUS_COMMANDS = [
    "rm -rf /",
    "rm -rf /*",
    "rm -rf ~",
    "rm -rf ~/*",
    "mkfs.",
    ":(){ :|:& };:",  # fork bomb
    "chmod -R 777 /",
    "> /dev/sda",
]

# Sub-commands starting with these rewrite history or escalate privileges
DANGEROUS_PREFIXES = [
    "sudo ",
    "git push --force",
    "git push -f",
    "git reset --hard",
    "git clean -f",
    "dd if=",
]

# General patterns that can be destructive
DANGEROUS_PATTERNS = [
    "rm -rf",
    "rm -fr",
    "dd of=/dev/",
]


def is_dangerous_bash_command(command: str) -> tuple[bool, str]:
    """
    Check if a shell command is potentially dangerous.

    The whole command is scanned, then every sub-command is checked against
    the prefix list so that `cd x && sudo y` is flagged too.

    Args:
        command: The shell command to check

    Returns:
        Tuple of (is_dangerous, warning_message)
    """
    cmd = command.strip()

    for dangerous in DANGEROUS_COMMANDS:
        if dangerous in cmd:
            return True, f"⚠️  WARNING: This command contains '{dangerous}' which is EXTREMELY DANGEROUS"

    for subcommand in split_command(cmd):
        for prefix in DANGEROUS_PREFIXES:
            if subcommand.startswith(prefix):
                return True, f"⚠️  WARNING: '{prefix.strip()}' can cause irreversible changes"

    for pattern in DANGEROUS_PATTERNS:
        if pattern in cmd:
            return True, f"⚠️  WARNING: This command contains '{pattern}' which can be destructive"

    return False, ""
