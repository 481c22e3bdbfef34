import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name="invoice_engine", level=logging.INFO):
    """
    Console logger for the package. Repositories log through child loggers
    (`invoice_engine.database...`), so configuring the package logger once
    covers postings and returns.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(ch)
    logger.setLevel(level)
    return logger
