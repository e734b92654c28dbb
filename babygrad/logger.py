import logging
import os
import sys


class ColorFormatter(logging.Formatter):
    """
    A logging formatter that colors each record by severity, so backward-pass
    debug traces stand out from warnings in the console.

    Examples:
        >>> import logging
        >>> from babygrad.logger import ColorFormatter
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(ColorFormatter())
        >>> logging.getLogger("babygrad").addHandler(handler)
    """

    grey = "\x1b[38;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    cyan = "\x1b[36;20m"
    green = "\x1b[32;20m"
    reset = "\x1b[0m"

    FORMATS = {
        logging.DEBUG: cyan,
        logging.INFO: green,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def format(self, record):
        color = self.FORMATS.get(record.levelno, self.grey)
        formatter = logging.Formatter(
            f"{color}%(asctime)s - %(name)s - %(levelname)s - %(message)s{self.reset}"
        )
        return formatter.format(record)


def setup_logger(name="babygrad"):
    """
    Set up a logger with colored console output.

    The level is DEBUG when the ``DEBUG`` environment variable is set and INFO
    otherwise. Calling it twice for the same name does not stack handlers.

    Args:
        name (str, optional): The name of the logger. Defaults to "babygrad",
            which covers every module in the package.

    Returns:
        logging.Logger: The configured logger instance.

    Examples:
        >>> import os
        >>> os.environ["DEBUG"] = "1"
        >>> from babygrad.logger import setup_logger
        >>> logger = setup_logger()
        >>> # every backward pass now logs its node count
    """
    logger = logging.getLogger(name)
    level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(level)
    if not any(isinstance(h.formatter, ColorFormatter) for h in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColorFormatter())
        logger.addHandler(console_handler)

    return logger
