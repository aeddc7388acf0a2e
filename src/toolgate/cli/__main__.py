from __future__ import annotations

import argparse
import sys

from security.policy import PolicyLoadError
from toolgate.cli.commands import run_authorize, run_build, run_check_policy, to_json, write_text_file
from tools.errors import ToolBuildError


def _print_error(msg: str) -> None:
    sys.stderr.write(f"ERROR: {msg}\n")
    sys.stderr.flush()


def _add_module_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--module",
        action="append",
        default=None,
        help="Dotted module path holding @tool declarations (repeatable; default: APP_TOOL_MODULES)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolgate",
        description="Tool registration build pass and policy checks",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    # build
    p_build = sub.add_parser(
        "build",
        help="Validate tool declarations and print their descriptors.",
    )
    _add_module_arg(p_build)
    p_build.add_argument(
        "--out",
        required=False,
        help="Optional output path for the descriptor JSON",
    )

    # check-policy
    p_check = sub.add_parser(
        "check-policy",
        help="Load a policy file and list tools it has no rule for.",
    )
    p_check.add_argument("--policy", required=True, help="Path to the YAML policy")
    _add_module_arg(p_check)

    # authorize
    p_authz = sub.add_parser(
        "authorize",
        help="Evaluate one authorization decision (operator aid).",
    )
    p_authz.add_argument("--policy", required=True, help="Path to the YAML policy")
    _add_module_arg(p_authz)
    p_authz.add_argument(
        "--principal",
        required=False,
        help="Caller principal; omit for the anonymous caller",
    )
    p_authz.add_argument(
        "--role",
        action="append",
        default=[],
        help="Role carried by the caller (repeatable)",
    )
    p_authz.add_argument("--tool", required=True, help="Tool name")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.cmd == "build":
            payload = run_build(args.module)
            text = to_json(payload)
            if args.out:
                print(str(write_text_file(args.out, text)))
            else:
                print(text)
            return 0

        if args.cmd == "check-policy":
            payload = run_check_policy(args.policy, args.module)
            print(to_json(payload))
            return 0

        if args.cmd == "authorize":
            payload = run_authorize(
                args.policy,
                args.module,
                principal=args.principal,
                roles=args.role,
                tool_name=args.tool,
            )
            print(to_json(payload))
            return 0

        _print_error("No command provided")
        return 2

    except (ToolBuildError, PolicyLoadError, ImportError, OSError) as e:
        _print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
