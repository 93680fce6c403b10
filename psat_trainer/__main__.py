from __future__ import annotations

import logging
import os
import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Ensure the repository root (parent of this package) is on ``sys.path``.

    Lets ``python psat_trainer/__main__.py`` work as well as
    ``python -m psat_trainer``.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    from .app import run  # type: ignore[attr-defined]
    from .config import LOG_LEVEL_ENV  # type: ignore[attr-defined]
except ImportError:
    _ensure_repo_root_on_path()
    from psat_trainer.app import run  # type: ignore[attr-defined]
    from psat_trainer.config import LOG_LEVEL_ENV  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for running the trainer from the command line."""
    logging.basicConfig(
        level=os.environ.get(LOG_LEVEL_ENV, "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
