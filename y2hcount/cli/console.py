# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Run summaries on stdout.

Logging goes to stderr and carries diagnostics; the Console prints what an
operator reads after a run: inputs, per-read or per-pair outcome tables,
output files and stage timings.
"""

import sys
from contextlib import contextmanager
from time import perf_counter


class Stopwatch:
    """Named stage timings for the run summary."""

    def __init__(self):
        self.stages = []          # [(name, seconds)]
        self._t0 = perf_counter()

    @contextmanager
    def stage(self, name):
        start = perf_counter()
        try:
            yield
        finally:
            self.stages.append((name, perf_counter() - start))

    @property
    def total(self):
        return perf_counter() - self._t0


class Console:
    """Structured stdout output of a subcommand."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3

    def __init__(self, level=NORMAL, stream=None):
        self.level = level
        self.stream = stream or sys.stdout
        self._bold = hasattr(self.stream, 'isatty') and self.stream.isatty()

    def _emit(self, *lines, level=NORMAL):
        if self.level < level:
            return
        for line in lines:
            print(line, file=self.stream)

    def banner(self, version, subtitle):
        title = 'Y2HCount v{} -- {}'.format(version, subtitle)
        if self._bold:
            title = '\033[1m' + title + '\033[0m'
        self._emit('', title, '')

    def section(self, title, items=()):
        """Section header followed by ``label: value`` lines."""
        self._emit('  ' + title)
        self._emit(*('    {:<16}{}'.format(label + ':', value) for label, value in items))

    def status(self, message, detail=None):
        self._emit('  ' + message)
        if detail:
            self._emit('    ' + detail)

    def table(self, header, rows):
        """Right-aligned columns after a left-aligned label column."""
        def fmt(row):
            return '    {:<16}'.format(str(row[0])) + ''.join('{:>12}'.format(str(v)) for v in row[1:])
        self._emit(fmt(header), *(fmt(r) for r in rows))

    def files(self, paths):
        self._emit('  Output', *('    ' + p for p in paths))

    def timing(self, stopwatch):
        total = stopwatch.total
        lines = ['  Timing']
        for name, secs in stopwatch.stages:
            pct = '{:>4.0f}%'.format(secs / total * 100) if total > 0 else ''
            lines.append('    {:<18}{:>5.1f}s{:>8}'.format(name, secs, pct))
        lines.append('    ' + '-' * 30)
        lines.append('    {:<18}{:>5.1f}s'.format('Total', total))
        self._emit(*lines, level=self.VERBOSE)

    def blank(self):
        self._emit('')
