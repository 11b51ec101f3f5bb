"""Console output formatting utilities for git-arrow."""

from __future__ import annotations

import sys
from typing import Optional


def format_duration(seconds: float) -> str:
    """
    Human readable elapsed time: 250ms, 12s, 3m4s, 1h2m3s.
    """
    ms = int(seconds * 1000)
    if ms < 1000:
        return f"{ms}ms"
    s = int(seconds)
    if s < 60:
        return f"{s}s"
    m, s = divmod(s, 60)
    if m < 60:
        return f"{m}m{s}s"
    h, m = divmod(m, 60)
    return f"{h}h{m}m{s}s"


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_run_started(
        self,
        repository: str,
        branch: str,
        old_rev: str,
        new_rev: str,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Repository: {repository}")
        print(f"On {branch}: {old_rev[:8]}..{new_rev[:8]}")

    def print_workspace(self, path: str, mode: str) -> None:
        print(f"Workspace: {path} ({mode})")

    def print_pipeline_start(self, name: str) -> None:
        print(f"\nPIPELINE: {name}")
        print("-" * (len(name) + 10))

    def print_pipeline_skipped(self, name: str, reason: str) -> None:
        print(f"  {name} (skipped: {reason})")

    def print_action_start(self, name: str) -> None:
        print(f"\nACTION: {name}")

    def print_output(self, line: str) -> None:
        """Print one line produced by an action, indented under it."""
        print(f"  {line}", flush=True)

    def print_action_done(self, name: str, duration: float) -> None:
        print(f"STATUS: success ({format_duration(duration)})")

    def print_failure(
        self,
        reason: str,
        pipeline: Optional[str] = None,
        action: Optional[str] = None,
        exit_code: Optional[int] = None,
    ) -> None:
        """
        Print failure message, locating the step first.

        Args:
            reason: Failure reason/error message
            pipeline: Pipeline that was running, if any
            action: Action that failed, if any
            exit_code: Optional exit code
        """
        if pipeline:
            print(f"\nPIPELINE FAILED: {pipeline}", file=sys.stderr)
        if action:
            print(f"ACTION: {action}", file=sys.stderr)
        if exit_code is not None:
            print(f"Exit code: {exit_code}", file=sys.stderr)
        print(f"Error: {reason}", file=sys.stderr)

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        if not results:
            print("  no pipeline matched")
        for name, status in results.items():
            print(f"  {name}: {status.upper()}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """Print structured error message."""
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
