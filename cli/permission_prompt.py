"""Terminal prompt for tool permission requests."""

import asyncio
from typing import Callable

from core.permissions import Action, PermissionRequest, PermissionResponse

InputFn = Callable[[str], str]


def format_request(request: PermissionRequest) -> str:
    lines = [f"{request.tool_name}({request.description})"]
    if request.warning:
        lines.append(f"⚠️  {request.warning}")
    lines.append("Do you want to proceed?")
    lines.append("  1. Yes")
    if request.suggested_prefix:
        lines.append(
            f"  2. Yes, and don't ask again for {request.suggested_prefix} commands in this project"
        )
    else:
        lines.append("  2. Yes, and don't ask again for this in this project")
    lines.append("  3. No, and tell me what to do differently")
    return "\n".join(lines)


def parse_answer(answer: str, request: PermissionRequest) -> Action | None:
    answer = answer.strip().lower()
    if answer in {"1", "y", "yes"}:
        return Action.APPROVE_ONCE
    if answer in {"2", "a", "always"}:
        # Dangerous commands are never remembered
        if request.is_dangerous:
            return Action.APPROVE_ONCE
        return Action.APPROVE_PREFIX if request.suggested_prefix else Action.APPROVE_ALWAYS
    if answer in {"3", "n", "no"}:
        return Action.DENY
    return None


def make_ask(read_line: InputFn = input, write: Callable[[str], None] = print):
    """
    Build an ask callback for InteractivePermissionChecker.

    The blocking read runs on a worker thread so the event loop keeps
    observing the abort signal while the user decides.
    """

    async def ask(request: PermissionRequest) -> PermissionResponse:
        write(format_request(request))
        while True:
            try:
                answer = await asyncio.to_thread(read_line, "> ")
            except EOFError:
                return PermissionResponse(action=Action.DENY)
            action = parse_answer(answer, request)
            if action is not None:
                return PermissionResponse(action=action)
            write("Please answer 1, 2 or 3.")

    return ask
