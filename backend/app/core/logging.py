import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Installe un seul StreamHandler sur le root logger (rappel sans effet)."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(h, "_teca_handler", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._teca_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
