"""Static package metadata surfaced by the CLI banner."""

from __future__ import annotations

import sys
from typing import Callable

name = "loginsight_forwarder"
title = "Forward structured log events to the Log Insight ingestion stream"
version = "0.1.0"
author = "loginsight_forwarder contributors"
shell_command = "loginsight-forwarder"


def print_info(writer: Callable[[str], object] | None = None) -> None:
    """Emit the metadata banner line by line through ``writer``.

    Examples
    --------
    >>> lines = []
    >>> print_info(writer=lines.append)
    >>> lines[0]
    'Info for loginsight_forwarder:\\n'
    """

    emit = writer if writer is not None else sys.stdout.write
    fields = [
        ("name", name),
        ("title", title),
        ("version", version),
        ("author", author),
        ("shell_command", shell_command),
    ]
    pad = max(len(label) for label, _ in fields)
    emit(f"Info for {name}:\n")
    emit("\n")
    for label, value in fields:
        emit(f"    {label:<{pad}} = {value}\n")
