from __future__ import annotations

import logging
import os
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", *, error_log: Optional[str] = None) -> None:
    """Install a console handler and, optionally, an ERROR-only file handler.

    Safe to call more than once; handlers installed by a previous call are replaced.
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_aurcrawl", False):
            root.removeHandler(h)
            h.close()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_FORMAT))
    console._aurcrawl = True  # type: ignore[attr-defined]
    root.addHandler(console)

    if error_log:
        log_dir = os.path.dirname(os.path.abspath(error_log))
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(error_log, encoding="utf-8")
        fh.setLevel(logging.ERROR)
        fh.setFormatter(logging.Formatter(_FORMAT))
        fh._aurcrawl = True  # type: ignore[attr-defined]
        root.addHandler(fh)

    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
