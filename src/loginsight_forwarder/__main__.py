"""Module entry point so ``python -m loginsight_forwarder`` runs the CLI.

Purpose
-------
Mirror the ``loginsight-forwarder`` console script for environments where
only the interpreter is on ``PATH`` (container images, cron wrappers).
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
