"""
Command line entry point: ``python -m robust_lsp_client``.

Installs or updates robust-lsp as needed, then runs the language server
until interrupted. With ``--check-only`` it stops after the install/update
pass and prints where the binary is.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from robust_lsp_client._core.version import CLIENT_VERSION
from robust_lsp_client.config import BootstrapConfig
from robust_lsp_client.launcher import SessionLauncher, SupervisedSession
from robust_lsp_client.orchestrator import InstallUpdateOrchestrator
from robust_lsp_client.prompts import AutoConfirmPrompter, ConsolePrompter
from robust_lsp_client.types import OrchestratorState


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="robust-lsp-client",
        description="Install, update and launch the robust-lsp language server.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {CLIENT_VERSION}"
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="accept install and update prompts without asking",
    )
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="install or update if needed, print the binary path, do not launch",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="enable debug logging",
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    config = BootstrapConfig.from_env(auto_confirm=args.yes)
    prompter = AutoConfirmPrompter(stream=sys.stderr) if config.auto_confirm else ConsolePrompter()

    launcher = None
    if not args.check_only:
        # The server speaks on our own stdin/stdout to whoever started us
        session = SupervisedSession(
            max_restarts=config.max_restarts,
            restart_delay=config.restart_delay,
            pipe_stdio=False,
        )
        launcher = SessionLauncher(config, runtime=session)

    orchestrator = InstallUpdateOrchestrator(prompter, config=config, launcher=launcher)
    result = await orchestrator.run()

    if result.state == OrchestratorState.ABORTED:
        print("robust-lsp is not available", file=sys.stderr)
        return 1

    if launcher is None:
        version = result.installed_version or "unknown version"
        print(f"{result.binary_path} ({version})")
        return 0

    if not launcher.started or launcher.options is None:
        return 1

    runtime = launcher.runtime
    try:
        if isinstance(runtime, SupervisedSession):
            await runtime.wait()
    finally:
        await launcher.stop()

    if isinstance(runtime, SupervisedSession) and runtime.failure is not None:
        print(runtime.failure.user_message(), file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
