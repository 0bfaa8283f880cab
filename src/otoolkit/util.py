#
#  otoolkit | otoolkit
#  util.py
#
#  This file contains miscellaneous utilities used around otoolkit; runtime options, error policy helpers
#    and the text/JSON rendering used by the CLI
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

import re
import sys
from importlib import metadata

from pygments import highlight
from pygments.formatters.terminal import TerminalFormatter
from pygments.lexers.data import JsonLexer

from lib0tk.log import log
from otoolkit.exceptions import MalformedMachOException

try:
    OTOOLKIT_VERSION = metadata.version('otoolkit')
except metadata.PackageNotFoundError:
    OTOOLKIT_VERSION = '1.0.0'

OUT_IS_TTY = sys.stdout.isatty()


class ignore:
    MALFORMED = False


class opts:
    DISABLE_COLOR = False
    # re-raise per-item decode failures inside lazy sequences instead of ending the sequence early
    STRICT_SEQUENCES = False
    READ_CHUNK_SIZE = 0x1000


def macho_is_malformed(msg=""):
    """Raise MalformedMachOException *if* we dont want to ignore bad mach-os

    :return:
    """
    if not ignore.MALFORMED:
        raise MalformedMachOException(msg)
    log.warn(f'Ignoring malformed Mach-O: {msg}')


def sequence_stopped(what, index, exc):
    """
    Called from inside a lazy sequence when decoding one of its items failed.

    The sequence ends after this returns; with opts.STRICT_SEQUENCES set the failure propagates instead.

    :param what: Human readable name of the sequence ("load commands", "symbols", ...)
    :param index: Index of the item that failed to decode
    :param exc: The exception raised while decoding it
    """
    if opts.STRICT_SEQUENCES:
        raise exc
    log.warn(f'{what}: stopped early at item {index} ({exc})')


def highlight_json(text):
    formatter = TerminalFormatter()
    return highlight(text, JsonLexer(), formatter)


ansi_escape = re.compile(r'(?:\x1B[@-_]|[\x80-\x9F])[0-?]*[ -/]*[@-~]')


def strip_ansi(msg):
    return ansi_escape.sub('', msg)


def otk_print(msg, file=None):
    if file is None:
        file = sys.stdout
    if file.isatty() and not opts.DISABLE_COLOR:
        print(msg, file=file)
    else:
        print(strip_ansi(msg), file=file)


def print_err(msg):
    print(msg, file=sys.stderr)


class Table:
    """
    ASCII Table Renderer
    .titles = a list of titles for each column
    .rows is a list of lists, each "sublist" representing each column, .e.g self.rows.append(['col1thing', 'col2thing'])

    Columns are never wrapped; output is meant to stay greppable when piped.
    """

    def __init__(self, dividers=False):
        self.titles = []
        self.rows = []

        self.dividers = dividers
        self.column_pad = 3 if dividers else 2

        self.column_maxes = []

    def preheat(self):
        self.column_maxes = [len(title) + self.column_pad for title in self.titles]

        for row in self.rows:
            for index, col in enumerate(row):
                col_size = max([len(strip_ansi(i)) + self.column_pad for i in col.split('\n')])
                if index >= len(self.column_maxes):
                    self.column_maxes.append(col_size)
                else:
                    self.column_maxes[index] = max(col_size, self.column_maxes[index])

    def _line(self, cols):
        line = ''
        for index, col in enumerate(cols):
            diff = self.column_maxes[index] - len(strip_ansi(col))
            if self.dividers:
                line += '| ' + col + ' ' * (diff - 2)
            else:
                line += col + ' ' * diff
        if self.dividers:
            line += '|'
        return line.rstrip()

    def _sep_line(self):
        return '+' + '+'.join('-' * (size - 1) for size in self.column_maxes) + '+'

    def render(self):
        """
        Render the whole table.

        :return: table text, one row per line (multi-line cells span several lines)
        """
        if not self.rows and not self.titles:
            return ""

        self.preheat()

        cwhitebold = '\33[0m\33[1m'
        reset = '\33[0m'
        if opts.DISABLE_COLOR:
            cwhitebold = reset = ''

        lines = []
        if self.dividers:
            lines.append(self._sep_line())
        if self.titles:
            lines.append(cwhitebold + self._line(self.titles) + reset)
            if self.dividers:
                lines.append(self._sep_line())

        for row in self.rows:
            split_cols = [col.split('\n') for col in row]
            height = max(len(col) for col in split_cols) if split_cols else 0
            for i in range(height):
                lines.append(self._line([col[i] if i < len(col) else '' for col in split_cols]))

        if self.dividers:
            lines.append(self._sep_line())

        return '\n'.join(lines)
