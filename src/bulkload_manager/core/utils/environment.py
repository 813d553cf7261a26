# -*- coding: utf-8 -*-

"""
Session variables from the environment or `.env` files.
"""

import os
import logging
from pathlib import Path
from typing import List, Optional
import dotenv

REQUIRED_ENV_VARS = ('SALESFORCE_INSTANCE_URL', 'SALESFORCE_SESSION_ID')
OPTIONAL_ENV_VARS = ('SALESFORCE_API_VERSION',)

# First match wins; .env.local is meant for untracked, per-developer sessions
ENV_FILE_NAMES = ('.env.local', '.env')


def _find_env_file(env_file: Optional[str] = None) -> Optional[Path]:
    if env_file:
        path = Path(env_file)
        if not path.exists():
            logging.warning(f"Specified .env file not found: {path}")
            return None
        return path

    for name in ENV_FILE_NAMES:
        path = Path.cwd() / name
        if path.exists():
            return path
    return None


def load_environment_variables(env_file: Optional[str] = None, verbose: bool = False) -> bool:
    """
    Load session variables from a `.env` file.

    Variables already set in the process environment are not overridden, so
    an exported session always wins over a stale file.

    Args:
        env_file: Specific .env file. If None, `.env.local` then `.env` in the
            current directory are tried.
        verbose: Whether to log which file was loaded.

    Returns:
        True if a file was found and loaded, False otherwise.
    """
    path = _find_env_file(env_file)
    if path is None:
        if verbose:
            logging.debug(f"No {' or '.join(ENV_FILE_NAMES)} file found, "
                          "relying on system environment variables")
        return False

    dotenv.load_dotenv(path, override=False)
    if verbose:
        loaded = [name for name in REQUIRED_ENV_VARS + OPTIONAL_ENV_VARS if os.getenv(name)]
        logging.debug(f"Loaded environment from {path} (set: {loaded})")
    return True


def validate_required_env_vars() -> List[str]:
    """
    Validate that the variables describing the caller's session are set.

    Returns:
        List of missing environment variables (empty if all present)
    """
    return [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]


def setup_environment(verbose: bool = False, env_file: Optional[str] = None) -> bool:
    """Load `.env` session variables for the package; a missing file is fine."""
    load_environment_variables(env_file, verbose)
    return True
