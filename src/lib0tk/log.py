#
#  otoolkit | lib0tk
#  log.py
#
#  Static, level-gated logger. Every message is prefixed with where it was logged from.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from enum import Enum
import sys
import inspect
import os


class LogLevel(Enum):
    NONE = -1
    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3
    DEBUG_MORE = 4
    # one line per decoded record; only useful when piped to a file
    DEBUG_TOO_MUCH = 5


def print_err(msg):
    print(msg, file=sys.stderr)


class log:
    """
    Small static logger with swappable output sinks.

    Debug output goes to LOG_FUNC, warnings and errors to LOG_ERR. Tests swap LOG_ERR out to capture failures.
    """

    LOG_LEVEL = LogLevel.ERROR
    LOG_FUNC = print
    LOG_ERR = print_err

    @staticmethod
    def caller():
        """ "otoolkit.<module>:L#<line>:<Class>:<function>()" for whoever called the public log method """
        frame = inspect.stack()[3]
        module = os.path.basename(frame.filename).split('.')[0]
        owner = frame.frame.f_locals.get('self')
        owner = type(owner) if owner is not None else frame.frame.f_locals.get('cls')
        where = f'{owner.__name__}:{frame.function}' if isinstance(owner, type) else frame.function
        return f'otoolkit.{module}:L#{frame.lineno}:{where}()'

    @staticmethod
    def _emit(level: LogLevel, tag, sink, msg):
        if log.LOG_LEVEL.value >= level.value:
            sink(f'{tag} - {log.caller()} - {msg}')

    @staticmethod
    def debug(msg=""):
        log._emit(LogLevel.DEBUG, 'DEBUG', log.LOG_FUNC, msg)

    @staticmethod
    def debug_more(msg=""):
        log._emit(LogLevel.DEBUG_MORE, 'DEBUG-2', log.LOG_FUNC, msg)

    @staticmethod
    def debug_tm(msg=""):
        log._emit(LogLevel.DEBUG_TOO_MUCH, 'DEBUG-3', log.LOG_FUNC, msg)

    @staticmethod
    def warn(msg=""):
        log._emit(LogLevel.WARN, 'WARN', log.LOG_ERR, msg)

    @staticmethod
    def error(msg=""):
        log._emit(LogLevel.ERROR, 'ERROR', log.LOG_ERR, msg)
