"""
Command line entry point.

    kestrel [prompt] [-p] [--dangerously-skip-permissions] [--cwd DIR] [--verbose]
    kestrel approved-tools list|remove <key>
    kestrel context get|set|remove|list
"""

import argparse
import asyncio
import logging
import os
import sys

from agent.context import ContextProvider
from agent.tools import get_all_tools
from config.loader import load_global_config
from core.constants import PRODUCT_NAME
from core.exceptions import ConfigError
from core.models import AssistantMessage, TextBlock
from core.permissions import PermissionStore

from .logging_config import setup_logging, timed
from .permission_prompt import make_ask
from .render import MessageRenderer
from .session import Session

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1

SUBCOMMANDS = ("approved-tools", "context")
EXIT_COMMANDS = {"/exit", "/quit", "exit", "quit"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kestrel",
        description=f"{PRODUCT_NAME} - starts an interactive session by default, use -p/--print for non-interactive output",
    )
    parser.add_argument("prompt", nargs="?", help="Your prompt")
    parser.add_argument(
        "-p",
        "--print",
        action="store_true",
        help="Print response and exit (useful for pipes)",
    )
    parser.add_argument(
        "--dangerously-skip-permissions",
        action="store_true",
        help="Skip all permission checks. Only use in sandboxes with no internet access.",
    )
    parser.add_argument("--cwd", default=None, help="The current working directory")
    parser.add_argument("--verbose", action="store_true", help="Show full tool output")
    return parser


def build_subcommand_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kestrel")
    parser.add_argument("--cwd", default=None, help="The current working directory")
    subparsers = parser.add_subparsers(dest="command", required=True)

    tools_parser = subparsers.add_parser("approved-tools", help="Manage approved tools")
    tools_subparsers = tools_parser.add_subparsers(dest="tools_cmd", required=True)
    tools_subparsers.add_parser("list", help="List all approved tools").set_defaults(
        func=_cmd_approved_tools_list
    )
    remove_parser = tools_subparsers.add_parser("remove", help="Remove a tool from the list of approved tools")
    remove_parser.add_argument("tool", help="Permission key to remove")
    remove_parser.set_defaults(func=_cmd_approved_tools_remove)

    context_parser = subparsers.add_parser("context", help="Set static context (eg. context set codeStyle ...)")
    context_subparsers = context_parser.add_subparsers(dest="context_cmd", required=True)
    get_parser = context_subparsers.add_parser("get", help="Get a value from context")
    get_parser.add_argument("key")
    get_parser.set_defaults(func=_cmd_context_get)
    set_parser = context_subparsers.add_parser("set", help="Set a value in context")
    set_parser.add_argument("key")
    set_parser.add_argument("value")
    set_parser.set_defaults(func=_cmd_context_set)
    list_parser = context_subparsers.add_parser("list", help="List all context values")
    list_parser.set_defaults(func=_cmd_context_list)
    rm_parser = context_subparsers.add_parser("remove", help="Remove a value from context")
    rm_parser.add_argument("key")
    rm_parser.set_defaults(func=_cmd_context_remove)
    return parser


def _cwd(args: argparse.Namespace) -> str:
    return os.path.abspath(args.cwd or os.getcwd())


def _cmd_approved_tools_list(args: argparse.Namespace) -> int:
    tools = PermissionStore(original_cwd=_cwd(args)).allowed_tools()
    if not tools:
        print("No tools are currently approved.")
    for tool in tools:
        print(tool)
    return EXIT_OK


def _cmd_approved_tools_remove(args: argparse.Namespace) -> int:
    if PermissionStore(original_cwd=_cwd(args)).remove_allowed_tool(args.tool):
        print(f"Removed {args.tool} from the list of approved tools")
        return EXIT_OK
    print(f"{args.tool} was not in the list of approved tools")
    return EXIT_ERROR


def _cmd_context_get(args: argparse.Namespace) -> int:
    value = ContextProvider(_cwd(args)).get_user_context().get(args.key)
    if value is None:
        return EXIT_ERROR
    print(value)
    return EXIT_OK


def _cmd_context_set(args: argparse.Namespace) -> int:
    ContextProvider(_cwd(args)).set_context(args.key, args.value)
    print(f"Set context.{args.key} to {args.value!r}")
    return EXIT_OK


def _cmd_context_list(args: argparse.Namespace) -> int:
    for key, value in ContextProvider(_cwd(args)).get_user_context().items():
        print(f"{key}: {value}")
    return EXIT_OK


def _cmd_context_remove(args: argparse.Namespace) -> int:
    ContextProvider(_cwd(args)).remove_context(args.key)
    print(f"Removed context.{args.key}")
    return EXIT_OK


@timed("print mode query")
async def run_print(session: Session, prompt: str) -> int:
    produced = await session.run_prompt(prompt, on_message=lambda message: None)
    last = next((m for m in reversed(produced) if isinstance(m, AssistantMessage)), None)
    if last is None:
        return EXIT_ERROR
    print("\n".join(b.text for b in last.message.content if isinstance(b, TextBlock)))
    return EXIT_ERROR if last.is_api_error_message else EXIT_OK


async def _print_and_close(session: Session, prompt: str) -> int:
    try:
        return await run_print(session, prompt)
    finally:
        await session.close()


def run_repl(session: Session, initial_prompt: str | None = None) -> int:
    """
    Read prompts until EOF or an exit command.

    Ctrl-C while a query runs aborts that query; at the prompt it exits.
    """
    renderer = MessageRenderer(get_all_tools(), verbose=session.verbose)
    print(f"✻ Welcome to {PRODUCT_NAME}!  cwd: {session.cwd}")

    with asyncio.Runner() as runner:
        try:
            prompt = initial_prompt
            while True:
                if prompt is None:
                    try:
                        prompt = input("> ")
                    except (EOFError, KeyboardInterrupt):
                        print()
                        break
                prompt = prompt.strip()
                if prompt in EXIT_COMMANDS:
                    break
                if prompt:
                    renderer.reset()
                    try:
                        runner.run(session.run_prompt(prompt, on_message=renderer.render))
                    finally:
                        renderer.finish()
                prompt = None
        finally:
            runner.run(session.close())
            print(session.cost_tracker.format_total_cost())
            try:
                session.save_costs()
            except ConfigError as e:
                logger.warning("Could not save session costs: %s", e)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    setup_logging()

    if any(arg in SUBCOMMANDS for arg in argv[:3]):
        args = build_subcommand_parser().parse_args(argv)
        return args.func(args)

    args = build_parser().parse_args(argv)
    cwd = os.path.abspath(args.cwd or os.getcwd())
    if not os.path.isdir(cwd):
        print(f"Error: Directory {cwd} does not exist", file=sys.stderr)
        return EXIT_ERROR

    config = load_global_config()
    verbose = args.verbose or config.verbose

    if args.print:
        prompt = args.prompt
        if prompt is None and not sys.stdin.isatty():
            prompt = sys.stdin.read()
        if not prompt:
            print("Error: Input must be provided either through stdin or as a prompt argument when using --print", file=sys.stderr)
            return EXIT_ERROR
        session = Session(
            cwd=cwd,
            config=config,
            dangerously_skip_permissions=args.dangerously_skip_permissions,
            verbose=verbose,
        )
        return asyncio.run(_print_and_close(session, prompt))

    session = Session(
        cwd=cwd,
        config=config,
        dangerously_skip_permissions=args.dangerously_skip_permissions,
        verbose=verbose,
        ask=make_ask(),
    )
    return run_repl(session, args.prompt)


if __name__ == "__main__":
    sys.exit(main())
