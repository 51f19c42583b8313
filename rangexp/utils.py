"""Provenance helpers for result manifests."""

from __future__ import annotations

import hashlib
import subprocess
from pathlib import Path

_PACKAGE_DIR = Path(__file__).resolve().parent


def config_hash(yaml_text: str) -> str:
    """Hex SHA-256 of the canonical YAML dump of a run configuration."""
    return hashlib.sha256(yaml_text.encode('utf-8')).hexdigest()


def get_git_hash(repo_dir: Path = _PACKAGE_DIR) -> str:
    """Commit of the checkout containing ``repo_dir``.

    Defaults to the rangexp source tree, so the manifest records the code
    revision regardless of the working directory. Returns 'unknown' for
    installs outside a git checkout or when git is unavailable.
    """
    try:
        proc = subprocess.run(
            ['git', 'rev-parse', 'HEAD'],
            cwd=repo_dir, capture_output=True, text=True, timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return 'unknown'
    if proc.returncode != 0:
        return 'unknown'
    return proc.stdout.strip()
