import logging
import time
from typing import Iterable

from colorlog import ColoredFormatter


log_colors = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'bold_red',
}

# thread name matters, bridge calls also run from BridgeExecutor workers
log_format = (
    '%(asctime)s %(log_color)s%(levelname)s%(reset)s '
    '[%(threadName)s] %(name)s: %(message)s'
)


class BridgeFormatter(ColoredFormatter):
    '''
    Colored formatter stamping records in UTC, ISO8601 with millisecond
    precision and a trailing 'Z'.

    '''

    converter = time.gmtime

    def formatTime(self, record, datefmt=None):
        if datefmt:
            return super().formatTime(record, datefmt)

        stamp = time.strftime('%Y-%m-%dT%H:%M:%S', self.converter(record.created))
        return f'{stamp}.{int(record.msecs):03d}Z'


def setup_logging(
    loglevel: str = 'info',
    *,
    trace_calls: bool = False,
    silence: Iterable[str] = ('urllib3', 'requests'),
) -> logging.Handler:
    '''
    Replace the root logger handlers with a single colored stream handler.

    `trace_calls` turns on the per call `debug` traces of `remote_db.bridge`
    regardless of `loglevel`.

    '''
    for noisy in silence:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger('remote_db.bridge').setLevel(
        logging.DEBUG if trace_calls else logging.NOTSET
    )

    handler = logging.StreamHandler()
    handler.setFormatter(BridgeFormatter(log_format, log_colors=log_colors))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(loglevel.upper())
    return handler
