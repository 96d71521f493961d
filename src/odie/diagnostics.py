"""Error formatting and actionable hints for Odie CLI output.

Keep this module small and dependency-light: it is imported by the CLI layer
and only depends on the error hierarchy.
"""

from __future__ import annotations

from odie.errors import OdieConfigError, OdieIndexError


def format_build_failures(failed: dict[str, list[str]]) -> str:
    """Format per-document failures into a human-readable stderr summary."""
    if not failed:
        return ""
    lines = [f"Failed to convert {len(failed)} document(s):\n"]
    for rel in sorted(failed):
        lines.append(f"  {rel}:")
        for err in failed[rel]:
            lines.append(f"    - {err}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def format_hint(exc: BaseException) -> str | None:
    """Return an actionable hint for a known error, or None."""
    msg = str(exc)

    if isinstance(exc, OdieConfigError):
        if "version" in msg:
            return "start odie.toml with `version = 1`"
        return "see the [paths], [render] and [build] tables in odie.toml"

    if isinstance(exc, OdieIndexError):
        if "template" in msg:
            return "check paths.index_template in odie.toml"
        return "check that the site root is writable"

    if isinstance(exc, ImportError) and "watchfiles" in msg:
        return "watch mode needs the optional dependency: pip install odie[watch]"

    return None


def format_error_with_hint(exc: BaseException) -> str:
    """Format error message + optional hint for stderr output."""
    msg = (str(exc) or repr(exc)).strip()
    result = f"error: {msg}"
    hint = format_hint(exc)
    if hint:
        result += f"\nhint: {hint}"
    return result
