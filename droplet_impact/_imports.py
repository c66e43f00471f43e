"""
Lazy import helper for optional dependencies.

Provides clear error messages when plotting dependencies are not installed,
guiding users to the correct pip extra.
"""

from __future__ import annotations

_EXTRA_MAP = {
    "matplotlib": "viz",
}


def import_optional(module_name: str, *, extra: str | None = None):
    """
    Import and return a module, raising a helpful ImportError if missing.

    Parameters
    ----------
    module_name : str
        Dotted module path, e.g. ``"matplotlib.pyplot"``.
    extra : str or None
        pip extra name (e.g. ``"viz"``).  If *None*, looked up from ``_EXTRA_MAP``
        using the top-level package name.

    Returns
    -------
    module
        The imported module object.

    Raises
    ------
    ImportError
        With a message telling the user which pip extra to install.
    """
    import importlib

    try:
        return importlib.import_module(module_name)
    except ImportError as exc:
        top_level = module_name.split(".")[0]
        # Installed but broken (e.g. a missing compiled backend) is a different
        # problem from not installed at all.
        from importlib.metadata import PackageNotFoundError, distribution
        try:
            distribution(top_level)
        except PackageNotFoundError:
            pass
        else:
            raise ImportError(
                f"'{module_name}' is installed but failed to import: {exc}. "
                f"This is likely a missing transitive dependency of '{top_level}'."
            ) from exc
        extra = extra or _EXTRA_MAP.get(top_level, "viz")
        raise ImportError(
            f"'{module_name}' is required for this operation but not installed. "
            f'Install it with: pip install "droplet_impact[{extra}]"'
        ) from None
