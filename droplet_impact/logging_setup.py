"""
Simulation logging configuration.

* ``configure_simulation_logging()`` — adds a FileHandler (and optionally a
  StreamHandler) to the **root logger** so every ``droplet_impact`` module,
  and any solver backend that logs, lands in the same log file.

* ``teardown_simulation_logging()`` — removes only the handlers we added,
  restoring the root logger to its previous state.

The diagnostic stream (volume lines and the final ``Finished after`` line)
is not a logger; it is written directly by the output sinks.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_FILENAME = "droplet_impact.log"

# Sentinel attribute added to handlers we create, so teardown can find them.
_HANDLER_TAG = "_droplet_impact_handler"

# Stashed original root level, set by configure and restored by teardown.
_original_root_level: int | None = None


def configure_simulation_logging(
    output_dir: str,
    file_level: int = logging.INFO,
    console_level: int | None = logging.INFO,
) -> logging.Logger:
    """Add a FileHandler (and optional StreamHandler) to the root logger.

    Parameters
    ----------
    output_dir:
        Directory for the log file.  Created if it doesn't exist.
    file_level:
        Logging level for the file handler.
    console_level:
        Logging level for the console handler, or ``None`` for no console
        handler.

    Returns
    -------
    logging.Logger
        A named logger ``droplet_impact.sim`` for the caller to use.
    """
    global _original_root_level

    root = logging.getLogger()

    # Idempotent: remove any previously tagged handlers first.
    _remove_tagged_handlers(root)

    if _original_root_level is None:
        _original_root_level = root.level

    Path(output_dir).mkdir(parents=True, exist_ok=True)

    log_path = os.path.join(output_dir, LOG_FILENAME)
    file_handler = logging.FileHandler(log_path, mode="w")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
    )
    setattr(file_handler, _HANDLER_TAG, True)
    root.addHandler(file_handler)

    levels = [file_level]
    if console_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        setattr(console_handler, _HANDLER_TAG, True)
        root.addHandler(console_handler)
        levels.append(console_level)

    # Set root level to the most verbose handler so each sees what it subscribed to.
    root.setLevel(min(levels))

    return logging.getLogger("droplet_impact.sim")


def teardown_simulation_logging() -> None:
    """Remove tagged handlers from the root logger and restore its level.

    Idempotent — safe to call multiple times or when configure was never called.
    """
    global _original_root_level

    root = logging.getLogger()
    _remove_tagged_handlers(root)

    if _original_root_level is not None:
        root.setLevel(_original_root_level)
        _original_root_level = None


def _remove_tagged_handlers(logger: logging.Logger) -> None:
    """Remove all handlers that carry our tag."""
    for handler in logger.handlers[:]:
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()
