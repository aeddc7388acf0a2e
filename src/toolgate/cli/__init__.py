"""
Command line entry points for the build-time pass and policy checks.

- run_build(): validate declarations and collect descriptors
- run_check_policy(): tools the policy has no rule for
- run_authorize(): one decision, with its internal reason
- main(): argparse front end (``python -m toolgate.cli``)
"""

from __future__ import annotations

from .commands import run_authorize, run_build, run_check_policy, to_json


def main(argv: list[str] | None = None) -> int:
    from .__main__ import main as _main

    return _main(argv)


__all__ = ["run_build", "run_check_policy", "run_authorize", "to_json", "main"]
