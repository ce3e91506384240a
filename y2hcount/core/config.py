# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Immutable run configuration for the linker scanner."""

import re
from dataclasses import dataclass

from .errors import ConfigError

_NUCLEOTIDES = re.compile(r'^[ACGT]+$')


@dataclass(frozen=True)
class ScanConfig:
    """Parameters of the linker scan and tag extraction.

    Built once at startup and handed to :class:`LinkerScanner`; never
    mutated during a run.
    """
    linker: str
    flank: int = 13
    max_mismatches: int = 0
    marker: str | None = None
    marker_distance: int = 10
    marker_mismatches: int = 0
    both_strands: bool = False
    indels: bool = False

    def __post_init__(self):
        if not self.linker or not _NUCLEOTIDES.match(self.linker):
            raise ConfigError(f'Linker must be a non-empty A/C/G/T sequence, got {self.linker!r}')
        if self.marker is not None and not _NUCLEOTIDES.match(self.marker):
            raise ConfigError(f'Marker must be an A/C/G/T sequence, got {self.marker!r}')
        if self.flank <= 0:
            raise ConfigError(f'Flanking length must be > 0, got {self.flank}')
        if self.max_mismatches < 0:
            raise ConfigError(f'Mismatch tolerance must be >= 0, got {self.max_mismatches}')
        if self.max_mismatches >= len(self.linker):
            raise ConfigError(
                f'Mismatch tolerance ({self.max_mismatches}) must be smaller than '
                f'the linker length ({len(self.linker)})'
            )
        if self.marker_distance < 0 or self.marker_mismatches < 0:
            raise ConfigError('Marker distance and marker mismatches must be >= 0')

    @classmethod
    def from_opts(cls, opts):
        """Build from a parsed options object."""
        linker = getattr(opts, 'linker', None)
        if linker is None:
            raise ConfigError('A linker sequence is required (--linker or config file)')
        marker = getattr(opts, 'marker', None)
        return cls(
            linker=linker.upper(),
            flank=int(opts.flank),
            max_mismatches=int(opts.max_mismatches),
            marker=marker.upper() if marker else None,
            marker_distance=int(getattr(opts, 'marker_distance', 10)),
            marker_mismatches=int(getattr(opts, 'marker_mismatches', 0)),
            both_strands=bool(getattr(opts, 'both_strands', False)),
            indels=bool(getattr(opts, 'indels', False)),
        )
