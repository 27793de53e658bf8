import logging


class NodeNameFilter(logging.Filter):
    def __init__(self, node_name: str):
        super().__init__()
        self.node_name = node_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.node = self.node_name
        return True


FORMAT = "%(asctime)s %(levelname)s [%(node)s] %(message)s"


def setup_logger(node_name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"landing_tracker.{node_name}")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FORMAT))
        handler.addFilter(NodeNameFilter(node_name))
        logger.addHandler(handler)

        # core library modules log under their own package name
        core = logging.getLogger("target_pipeline")
        if not core.handlers:
            core.setLevel(level)
            core.addHandler(handler)

    return logger


def add_file_handler(logger: logging.Logger, node_name: str, log_path: str) -> logging.Handler:
    """Attach a session log file to the node logger and to the core library logger."""
    handler = logging.FileHandler(log_path)
    handler.setFormatter(logging.Formatter(FORMAT))
    handler.addFilter(NodeNameFilter(node_name))
    logger.addHandler(handler)
    core = logging.getLogger("target_pipeline")
    if core.level == logging.NOTSET or core.level > logger.level:
        core.setLevel(logger.level)
    core.addHandler(handler)
    return handler


def remove_file_handler(logger: logging.Logger, handler: logging.Handler) -> None:
    logger.removeHandler(handler)
    logging.getLogger("target_pipeline").removeHandler(handler)
    handler.close()
