"""Test helpers for cluster-converge tools."""

from contextlib import redirect_stderr, redirect_stdout
import io

from cluster_converge.tool.cluster_converge import main


def run_command(args: list[str]) -> str:
    """Run the tool and return its progress lines followed by its output."""
    out = io.StringIO()
    err = io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        main(args)
    return err.getvalue() + out.getvalue()
