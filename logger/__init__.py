import logging
import os
import sys


class CustomExtraLogAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        my_context = kwargs.pop("extra", self.extra["extra"])
        return "[%s] %s" % (my_context, msg), kwargs


def get_logger(name, level=None) -> logging.Logger:

    FORMAT = "[%(levelname)s  %(name)s %(module)s:%(lineno)s - %(funcName)s() - %(asctime)s]\n\t %(message)s \n"
    TIME_FORMAT = "%d.%m.%Y %I:%M:%S %p"
    # unset means stderr only
    FILENAME = os.environ.get("LOG_FILE")
    level = level or os.environ.get("LOG_LEVEL", "DEBUG").upper()

    logging.basicConfig(
        format=FORMAT, datefmt=TIME_FORMAT, level=level, filename=FILENAME
    )

    logger_instance = logging.getLogger(name)

    # get_logger may run more than once per name
    if not logger_instance.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        logger_instance.addHandler(handler)

    logger_instance = CustomExtraLogAdapter(logger_instance, {"extra": None})

    return logger_instance


logger = get_logger("rate_layer")
