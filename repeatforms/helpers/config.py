"""
Reads the INI configuration file.
"""

from configparser import ConfigParser
from pathlib import Path
from typing import Dict


def config(path: Path, section: str) -> Dict[str, str]:
    """
    Returns the key-value pairs of a section of the configuration file.

    Args:
        path (Path): The path to the configuration file.
        section (str): The section of the configuration file to read.

    Returns:
        Dict[str, str]: The parameters defined in the section.

    Raises:
        ValueError: If the section is not found in the configuration file.
    """
    parser = ConfigParser()
    parser.read(path)

    if not parser.has_section(section):
        raise ValueError(f"Section {section} not found in the {path} file")

    return dict(parser.items(section))
