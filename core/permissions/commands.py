"""Shell command splitting for per-sub-command permission checks."""

# Characters that form shell control operators (&&, ||, ;, |, &, newline)
CONTROL_CHARS = ";&|\n"
QUOTE_CHARS = "'\""
REDIRECT_CHARS = "<>"


def split_command(command: str) -> list[str]:
    """
    Split a shell command into sub-commands on control operators.

    Quoted text, backslash escapes and parenthesized groups such as
    `$(...)` are never split. `&` that belongs to a redirection
    (`2>&1`, `>&2`, `&>file`) stays attached to its sub-command.

    Args:
        command: Full shell command line

    Returns:
        Non-empty, stripped sub-commands in order
    """
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    depth = 0
    i = 0
    n = len(command)

    def flush() -> None:
        text = "".join(current).strip()
        if text:
            parts.append(text)
        current.clear()

    while i < n:
        ch = command[i]

        if quote:
            current.append(ch)
            if ch == "\\" and quote == '"' and i + 1 < n:
                current.append(command[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        if ch == "\\" and i + 1 < n:
            current.append(ch)
            current.append(command[i + 1])
            i += 2
            continue

        if ch in QUOTE_CHARS:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")" and depth > 0:
            depth -= 1
        elif depth == 0 and ch == "&" and (
            (current and current[-1] in REDIRECT_CHARS)
            or (i + 1 < n and command[i + 1] == ">")
        ):
            pass
        elif depth == 0 and ch in CONTROL_CHARS:
            flush()
            while i < n and command[i] in CONTROL_CHARS:
                i += 1
            continue

        current.append(ch)
        i += 1

    flush()
    return parts
