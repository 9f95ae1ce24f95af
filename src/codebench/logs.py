from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Installs one stream handler on the `codebench` logger (idempotent)."""
    root = logging.getLogger("codebench")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(getattr(h, "_codebench", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._codebench = True  # type: ignore[attr-defined]
        root.addHandler(handler)
