import json
import logging
import os


def command_logging(*args, extras=None):
    """
    Decorator for command entry points to configure json logging. Two ways to use me

        @command_logging
        def main():
    OR
        @command_logging(extras={'command': 'create-table'})
        def main():
    """

    def outer_wrapper(func):
        def inner_wrapper(*func_args, **func_kwargs):
            logger = configure_logging(extras=extras)
            try:
                return func(*func_args, **func_kwargs)
            except Exception as err:
                # log it in our json format, then let it propagate so the command still fails
                logger.exception(str(err))
                raise err

        return inner_wrapper

    if args:
        return outer_wrapper(args[0])
    else:
        return outer_wrapper


def configure_logging(level=None, extras=None):
    "Point the root logger at stderr with json formatting. Level defaults to $LOG_LEVEL or INFO."
    logger = logging.getLogger()
    if not logger.handlers:
        logger.addHandler(logging.StreamHandler())
    for log_handler in logger.handlers:
        log_handler.setFormatter(JsonLogFormatter(extras=extras))
    logger.setLevel(level or os.environ.get('LOG_LEVEL', 'INFO'))
    return logger


# https://docs.python.org/3/howto/logging-cookbook.html#using-a-context-manager-for-selective-logging
class LogLevelContext:
    "Temporarily log at `level`, for records that should get out whatever LOG_LEVEL says"

    def __init__(self, logger, level):
        self.logger = logging.getLogger(logger) if isinstance(logger, str) else logger
        self.level = level

    def __enter__(self):
        self.old_level = self.logger.level
        self.logger.setLevel(self.level)
        return self.logger

    def __exit__(self, et, ev, tb):
        self.logger.setLevel(self.old_level)


# https://github.com/python/cpython/blob/v3.8.3/Lib/logging/__init__.py#L510
class JsonLogFormatter(logging.Formatter):
    "Format logging records as single-line json"

    def __init__(self, extras=None, **kwargs):
        "`extras` is a dict of data to add to every log record"
        self.extras = extras or {}
        super().__init__(**kwargs)

    def format(self, record):
        # Placing `message` first keeps it readable when lines get truncated
        data = {
            'message': record.getMessage(),
            'level': record.levelname,
            **self.extras,
            'sourceFile': record.pathname,
            'sourceLine': record.lineno,
        }

        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)
            data['exceptionInfo'] = record.exc_text.split('\n')
        if record.stack_info:
            data['stackInfo'] = record.stack_info.split('\n')
        return f'{record.levelname} Data: {json.dumps(data, default=str)}'
