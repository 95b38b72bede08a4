"""
revsplit.version — semantic version string and VCS describe helper.

Tiny and dependency-free so it can be imported very early (packaging, CLIs).

Usage:
    from revsplit.version import __version__, git_describe
"""

from __future__ import annotations

import os
import subprocess
from functools import lru_cache
from pathlib import Path

# Bump this when making a tagged release. Use semver (major.minor.patch).
__version__ = "0.3.0"


@lru_cache(maxsize=1)
def git_describe() -> str:
    """
    Return a best-effort 'git describe' style string.

    Resolution order:
      1) Environment override REVSPLIT_GIT_DESCRIBE (useful in containers).
      2) `git describe --tags --dirty --always` when run from a checkout.
      3) Fallback to __version__.
    """
    override = os.getenv("REVSPLIT_GIT_DESCRIBE")
    if override:
        return override.strip()

    root = Path(__file__).resolve().parent.parent
    if not (root / ".git").exists():
        return __version__
    try:
        out = subprocess.run(
            ["git", "describe", "--tags", "--dirty", "--always"],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=2,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return __version__
    desc = out.stdout.strip()
    return desc or __version__


__all__ = ["__version__", "git_describe"]
