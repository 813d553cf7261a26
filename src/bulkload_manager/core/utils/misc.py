# -*- coding: utf-8 -*-

from pathlib import Path

import yaml


#=======================================================================
# YAML Utilities
#=======================================================================

def read_yaml(path):
    """
    Read a YAML file.

    Args:
        path (str): Path to the YAML file.

    Returns:
        Parsed YAML content, None for an empty file.
    """
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


#=======================================================================
# Path Utilities
#=======================================================================

def mask_path(path, base_dir=None):
    """
    Shorten a path for logging so that user directories are not leaked.

    Args:
        path (str): The full path to mask.
        base_dir (str, optional): Directory to show the path relative to.
            Defaults to the current working directory.

    Returns:
        str: The path relative to `base_dir`, under "~", or unchanged.
    """
    path = Path(path).absolute()
    base_dir = Path.cwd() if base_dir is None else Path(base_dir)

    if path.is_relative_to(base_dir):
        return str(path.relative_to(base_dir))
    if path.is_relative_to(Path.home()):
        return f"~/{path.relative_to(Path.home())}"
    return str(path)
