"""CI workflow plumbing: step outputs and failure annotations."""

from __future__ import annotations

import os
import uuid
from typing import Mapping

import click

from critcompare.logging import get_logger

log = get_logger("actions")


def set_output(name: str, value: str, environ: Mapping[str, str] | None = None) -> bool:
    """Append a step output to the file named by ``$GITHUB_OUTPUT``.

    Values may span several lines, so the heredoc form with a random
    delimiter is always used.

    Returns:
        True if the output was written.
    """
    env = os.environ if environ is None else environ
    output_path = env.get("GITHUB_OUTPUT")
    if not output_path:
        log.debug("GITHUB_OUTPUT not set; skipping output %r", name)
        return False

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
    return True


def _escape_data(text: str) -> str:
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def set_failed(message: str) -> None:
    """Emit an ``::error::`` annotation for the workflow run."""
    click.echo(f"::error::{_escape_data(message)}")
