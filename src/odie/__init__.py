from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from odie.block import render_line
from odie.document import render_document
from odie.inline import render_inline
from odie.style import Style


def _package_version() -> str:
    try:
        return version("odie")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = ["Style", "__version__", "render_document", "render_inline", "render_line"]
