# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

# native lib
import logging
import os
import socket
import sys
from datetime import datetime
from enum import Enum


class LogFormat(Enum):
    """The Enum class of the log format.

    Example:
        - ``LogFormat.full``: full time | host | pid | tag | level | msg
        - ``LogFormat.simple``: simple time | tag | level | msg
        - ``LogFormat.internal``: simple time | component | level | msg
        - ``LogFormat.cli_debug`` : simple time | level | msg
        - ``LogFormat.cli_info`` (file): simple time | level | msg
        - ``LogFormat.cli_info`` (stdout):  msg
    """
    full = 1
    simple = 2
    internal = 3
    cli_debug = 4
    cli_info = 5
    none = 6


FORMAT_NAME_TO_FILE_FORMAT = {
    LogFormat.full: logging.Formatter(
        fmt='%(asctime)s | %(host)s | %(process)d | %(tag)s | %(levelname)s | %(message)s'),
    LogFormat.simple: logging.Formatter(
        fmt='%(asctime)s | %(tag)s | %(levelname)s | %(message)s', datefmt='%H:%M:%S'),
    LogFormat.internal: logging.Formatter(
        fmt='%(asctime)s | %(component)s | %(levelname)s | %(message)s', datefmt='%H:%M:%S'),
    LogFormat.cli_debug: logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"),
    LogFormat.cli_info: logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"),
    LogFormat.none: None
}

FORMAT_NAME_TO_STDOUT_FORMAT = {
    # We need to output clean messages in the INFO mode.
    LogFormat.cli_info: logging.Formatter(fmt='%(message)s'),
}

level_map = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARN,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}


def msgformat(logfunc):
    """The decorator used to construct the log msg."""

    def _msgformatter(self, msg, *args):
        if args:
            logfunc(self, "%s %s", isinstance(msg, str) and msg or repr(msg), repr(args))
        else:
            logfunc(self, "%s", isinstance(msg, str) and msg or repr(msg))

    return _msgformatter


class Logger(object):
    """A simple wrapper for logging.

    The Logger hosts a stdout handler and, if ``dump_folder`` is given, a file handler.
    The file handler is set to ``DEBUG`` level and will dump all the logging info to
    ``dump_folder/tag.log``. The logging level of the stdout handler is decided by
    the ``stdout_level``, and can be redirected by setting the environment variable
    ``LOG_LEVEL``. Supported ``LOG_LEVEL`` includes: ``DEBUG``, ``INFO``, ``WARN``,
    ``ERROR``, ``CRITICAL``.

    Example:
        ``$ export LOG_LEVEL=DEBUG``

    Args:
        tag (str): Log tag for stream and file output.
        format_ (LogFormat): Predefined formatter. Defaults to ``LogFormat.simple``.
        dump_folder (str): Log dumped folder. Defaults to None, which disables the file handler.
        dump_mode (str): Write log file mode. Defaults to ``w``. Use ``a`` to
            append log.
        extension_name (str): Final dumped file extension name. Defaults to `log`.
        auto_timestamp (bool): Add a timestamp to the dumped log file name or not.
            E.g: `tag.1574953673.137387.log`.
        stdout_level (str): the logging level of the stdout handler. Defaults to
            ``WARN``.
    """

    def __init__(
        self, tag: str, format_: LogFormat = LogFormat.simple, dump_folder: str = None, dump_mode: str = 'w',
        extension_name: str = 'log', auto_timestamp: bool = False, stdout_level="WARN"
    ):
        self._file_format = FORMAT_NAME_TO_FILE_FORMAT[format_]
        self._stdout_format = FORMAT_NAME_TO_STDOUT_FORMAT[format_] \
            if format_ in FORMAT_NAME_TO_STDOUT_FORMAT else \
            FORMAT_NAME_TO_FILE_FORMAT[format_]
        self._stdout_level = os.environ.get('LOG_LEVEL') or stdout_level
        if isinstance(self._stdout_level, str):
            self._stdout_level = level_map.get(self._stdout_level.upper(), logging.WARN)
        self._logger = logging.getLogger(tag)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._extension_name = extension_name

        # Loggers are process-wide, drop the handlers of a previous wrapper with the same tag.
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

        if dump_folder is not None:
            os.makedirs(dump_folder, exist_ok=True)

            if auto_timestamp:
                filename = f'{tag}.{datetime.now().timestamp()}'
            else:
                filename = f'{tag}'

            filename += f'.{self._extension_name}'

            # File handler
            fh = logging.FileHandler(
                filename=f'{os.path.join(dump_folder, filename)}', mode=dump_mode, encoding="utf-8"
            )
            fh.setLevel(logging.DEBUG)
            if self._file_format is not None:
                fh.setFormatter(self._file_format)
            self._logger.addHandler(fh)

        # Stdout handler
        sh = logging.StreamHandler(sys.stdout)
        sh.setLevel(self._stdout_level)
        if self._stdout_format is not None:
            sh.setFormatter(self._stdout_format)
        self._logger.addHandler(sh)

        self._extra = {'host': socket.gethostname(), 'tag': tag}

    def set_stdout_level(self, level):
        """Change the level of the stdout handler, e.g. when the CLI runs with ``--debug``."""
        if isinstance(level, str):
            level = level_map[level.upper()]
        for handler in self._logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(level)

    @msgformat
    def debug(self, msg, *args):
        """Add a log with ``DEBUG`` level."""
        self._logger.debug(msg, *args, extra=self._extra)

    @msgformat
    def info(self, msg, *args):
        """Add a log with ``INFO`` level."""
        self._logger.info(msg, *args, extra=self._extra)

    @msgformat
    def warn(self, msg, *args):
        """Add a log with ``WARN`` level."""
        self._logger.warning(msg, *args, extra=self._extra)

    @msgformat
    def error(self, msg, *args):
        """Add a log with ``ERROR`` level."""
        self._logger.error(msg, *args, extra=self._extra)

    @msgformat
    def critical(self, msg, *args):
        """Add a log with ``CRITICAL`` level."""
        self._logger.critical(msg, *args, extra=self._extra)


class InternalLogger(Logger):
    """An internal logger used by the engine components, tagged with the component name."""

    instances = []

    def __init__(
        self, component_name: str, tag: str = None, format_: LogFormat = LogFormat.internal,
        dump_folder: str = None, dump_mode: str = 'a', extension_name: str = 'log',
        auto_timestamp: bool = False
    ):
        super().__init__(
            tag if tag else f"cloudplan.{component_name}", format_, dump_folder, dump_mode, extension_name,
            auto_timestamp
        )

        self._extra = {'component': component_name}
        InternalLogger.instances.append(self)


def set_internal_stdout_level(level):
    """Change the stdout level of every engine component logger created so far."""
    for logger in InternalLogger.instances:
        logger.set_stdout_level(level)
