"""Checks for external executables."""

import shutil

from bulk_fetch.errors import BinaryNotFoundError


def is_binary_on_path(binary_name: str) -> bool:
    """Whether the executable can be found on the user's PATH."""
    return shutil.which(binary_name) is not None


def check_binary_existence(binary_name: str) -> None:
    """
    Ensure an executable is installed and on PATH.

    Raises:
        BinaryNotFoundError: If it can't be located
    """
    if not is_binary_on_path(binary_name):
        raise BinaryNotFoundError(binary_name)
