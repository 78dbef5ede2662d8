"""Console script entrypoint.

The CLI itself lives in `workflow_engine.core.main`.
"""

from __future__ import annotations

from workflow_engine.core.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
