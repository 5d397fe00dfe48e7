import argparse
import asyncio
import getpass
import sys
from pathlib import Path

from xiqi.xiqi_runtime import ScriptRunner
from xiqi.xiqi_parser import parse
from xiqi.xiqi_serialize import serialize

PROMPT = ">> "


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def render(value, fmt: str = "text") -> str:
    if fmt == "text":
        return value.inspect()
    return serialize(value, fmt=fmt).rstrip("\n")


def print_side_effects(result):
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xiqi", description="The XIQI programming language.")
    parser.add_argument("file", nargs="?", help="script to run; starts the REPL when omitted")
    parser.add_argument("--ast", action="store_true", help="print the parsed AST of FILE instead of running it")
    parser.add_argument("--format", choices=("text", "json", "yaml"), default="text",
                        help="how to render results (default: text)")
    return parser


def dump_ast(file_path: str, fmt: str):
    """Print the syntax tree of a script; exit 1 on a missing file or syntax errors."""
    try:
        source = Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    program, errors = parse(source)
    if errors:
        for msg in errors:
            print(f"\t{msg}", file=sys.stderr)
        raise SystemExit(1)
    if fmt == "text":
        print(program.to_str_repr())
    else:
        print(serialize(program, fmt=fmt).rstrip("\n"))


def run_script_file(file_path: str, fmt: str = "text"):
    """Run a XIQI script file non-interactively and exit with appropriate status."""
    runner = ScriptRunner()
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = runner.handle_script(source)
    print_side_effects(result)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    if result.value is not None:
        print(render(result.value, fmt))


async def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    args = build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)
    if args.file:
        if args.ast:
            dump_ast(args.file, args.format)
        else:
            run_script_file(args.file, args.format)
        return

    print(f"Hello {getpass.getuser()}! This is the XIQI programming language!")
    print("Feel free to type in commands")

    # Setup
    runner = ScriptRunner()

    # REPL Loop
    while True:
        try:
            raw = await ainput(PROMPT)
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = runner.handle_script(line)

            # Print side effects (from `puts`)
            print_side_effects(result)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            # Print final result
            if result.value is not None:
                print(render(result.value, args.format))

        except EOFError:
            print("\nExiting.")
            break


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
