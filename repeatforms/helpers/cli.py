"""
Module providing command line helpers.
"""

import subprocess
from pathlib import Path
from typing import Optional

from repeatforms.errors import ConfigurationError


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """
    Returns the top level directory of the git checkout holding `cwd`.

    Args:
        cwd (Optional[Path], optional): Directory to start from. Defaults to
            the current working directory.

    Returns:
        Path: The top level directory of the checkout.

    Raises:
        ConfigurationError: If `cwd` is not inside a git checkout.
    """
    try:
        output = subprocess.check_output(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=cwd,
            stderr=subprocess.DEVNULL,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        raise ConfigurationError(
            f"Unable to locate the repository root from {cwd or Path.cwd()}"
        ) from e

    return Path(output.decode("utf-8").strip())
