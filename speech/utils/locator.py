"""
Executable lookup on the search path.

Resolves names with :func:`shutil.which` against an injectable ``PATH``
so binary discovery has no process side effects and can be exercised
against a fake environment in tests.
"""

import os
import shutil
from pathlib import Path
from typing import Mapping, Optional


class ExecutableLocator:
    """
    Finds executables by name on a ``PATH``-style search list.

    Args:
        environ: Environment mapping to read ``PATH`` from (defaults to
                 :data:`os.environ`).
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ if environ is not None else os.environ

    def find(self, name: str) -> Optional[Path]:
        """Return the first executable called *name* on the search path."""
        found = shutil.which(name, path=self._environ.get("PATH", ""))
        return Path(found) if found else None
