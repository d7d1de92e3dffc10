import logging
import sys

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from ..core.signals import signals

LOG_LEVEL = logging.DEBUG
LOG_FORMAT = '[%(asctime)s] <%(module)s> %(levelname)s:  %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Name of the LogRecord attribute carrying the preset a message is about
PRESET_ATTR = 'preset'

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def preset_extra(preset_name):
    """Return the ``extra`` mapping that tags a log call with a preset name.

    Example:
        logging.warning('Plugin failed', extra=preset_extra(preset.name))
    """
    return {PRESET_ATTR: preset_name}


def qt_message_handler(mode, context, message):
    """
    Routes Qt's own messages to the 'Qt' logger. Fatal messages exit.
    """
    level = _QT_LEVELS.get(mode, logging.INFO)
    logging.getLogger('Qt').log(level, message.strip())
    if mode == QtMsgType.QtFatalMsg:
        sys.exit(1)


def setup_logging(enable_stream_handler=True, enable_qt_handler=True, log_level=LOG_LEVEL):
    """
    Configures the root logger and optionally installs the Qt message handler.

    Args:
        enable_stream_handler (bool): Log to stdout as well as the in-memory tank.
        enable_qt_handler (bool): Route Qt's own messages through Python logging.
        log_level (int): Level applied to the root logger and every handler.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers = [TankHandler()]
    if enable_stream_handler:
        handlers.insert(0, logging.StreamHandler(sys.stdout))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    if enable_qt_handler:
        qInstallMessageHandler(qt_message_handler)


class TankHandler(logging.Handler):
    """
    Keeps formatted log messages in memory so a host panel can show why a preset
    failed to apply or save.

    Records logged with :func:`preset_extra` remember their preset, and
    :meth:`get_logs` can narrow the tank down to a single preset.

    Attributes:
        tank (list[tuple[int, str | None, str]]): ``(level, preset name, message)``
            for every record handled.
    """

    def __init__(self):
        super().__init__()
        self.tank = []

    def emit(self, record):
        try:
            message = self.format(record)
            self.tank.append((record.levelno, getattr(record, PRESET_ATTR, None), message))
            if record.levelno >= logging.ERROR:
                signals.showLogs.emit()
        except (Exception, KeyboardInterrupt):
            self.handleError(record)

    def get_logs(self, level=logging.NOTSET, preset=None):
        """
        Returns stored messages at or above ``level``.

        Args:
            level (int, optional): The minimum logging level.
            preset (str, optional): Only return messages tagged with this preset name.

        Returns:
            list[str]: The formatted messages, oldest first.
        """
        return [
            msg for lvl, name, msg in self.tank
            if lvl >= level and (preset is None or name == preset)
        ]

    def clear_logs(self):
        self.tank.clear()
