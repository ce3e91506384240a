# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

""" Y2HCount paircount

"""
import sys
import os
from collections import OrderedDict
import logging as lg

from . import SubcommandOptions, REPORTING_OPTS, configure_logging
from .console import Stopwatch
from ..core.config import ScanConfig
from ..core.counter import count_pairs
from ..core.errors import ConfigError
from ..core.emitter import emit
from ..core.reporter import output_scan_detail, output_scan_report
from ..utils.fastq import iter_paired_reads
from ..utils.helpers import format_minutes as fmtmins


class PairCountOptions(SubcommandOptions):

    OPTS = """
    - Input Options:
        - reads:
            positional: True
            nargs: "+"
            help: Read files (FASTQ or FASTA, optionally gzipped). Several
                  files, e.g. read 1 and read 2 of a paired run, are merged
                  record by record.
        - linker:
            help: Linker sequence that separates the bait and prey tags.
                  Required, on the command line or in the config file.
        - marker:
            help: Optional secondary marker (e.g. a restriction site) that
                  must occur next to the linker for a read to be counted.
        - marker_distance:
            type: int
            default: 10
            help: Maximum number of bases between the linker and the marker.
        - marker_mismatches:
            type: int
            default: 0
            help: Mismatches allowed in the marker.
    - Scan Options:
        - max_mismatches:
            type: int
            default: 0
            help: Mismatches (or, with --indels, edits) allowed between the
                  linker and the read.
        - flank:
            type: int
            default: 13
            help: Length of the bait and prey tags taken on either side of
                  the linker.
        - both_strands:
            action: store_true
            help: Also search the reverse complement of reads without a
                  forward linker hit.
        - indels:
            action: store_true
            help: Locate the linker by edit distance, so that insertions and
                  deletions count against --max_mismatches like mismatches.
    - Performance Options:
        - ncpu:
            default: 1
            type: int
            help: Number of workers counting pairs.
        - executor:
            default: thread
            choices:
                - thread
                - process
            help: Worker type. "thread" workers share one sharded count
                  table; "process" workers return partial counts that are
                  merged by the main process.
        - chunk_size:
            type: int
            default: 10000
            help: Number of reads handed to a worker at once.
    - Output Options:
        - detail:
            action: store_true
            help: Also write a per-read table of scan outcomes and linker
                  positions.
    """ + REPORTING_OPTS

    def __init__(self, args):
        super().__init__(args)
        if self.logfile is None:
            self.logfile = sys.stderr


def run(args):
    """Scan reads, count tag pairs and write the pair outputs.

    Args:
        args: Parsed argparse namespace.
    """
    opts = PairCountOptions(args)
    console = configure_logging(opts)
    config = ScanConfig.from_opts(opts)
    if opts.ncpu < 1:
        raise ConfigError(f'--ncpu must be >= 1, got {opts.ncpu}')
    lg.info('\n{}\n'.format(opts))
    stopwatch = Stopwatch()

    console.banner(opts.version, 'Bait-Prey Pair Counting')
    _inputs = [('Reads', os.path.basename(p)) for p in opts.reads]
    _inputs += [('Linker', config.linker), ('Marker', config.marker or '-'),
                ('Mismatches', '{}{}'.format(config.max_mismatches, ' (edits)' if config.indels else '')),
                ('Flank', config.flank),
                ('Workers', '{} ({})'.format(opts.ncpu, opts.executor if opts.ncpu > 1 else 'inline'))]
    console.section('Input', _inputs)
    console.blank()

    details = [] if opts.detail else None
    lg.info('Counting pairs...')
    with stopwatch.stage('Counting'):
        table, stats = count_pairs(
            iter_paired_reads(opts.reads),
            config,
            ncpu=opts.ncpu,
            executor=opts.executor,
            chunk_size=opts.chunk_size,
            details=details,
        )
    _elapsed = stopwatch.stages[-1][1]
    lg.info(f'Counted pairs in {fmtmins(_elapsed)}')
    lg.info(str(stats))

    console.status(
        'Counting pairs... done ({:.1f}s)'.format(_elapsed),
        '{:,} reads -- {:,} with a tag pair, {:,} distinct pairs'.format(stats.total, stats.paired, len(table)),
    )
    console.blank()
    console.section('Read outcomes')
    console.table(('outcome', 'reads', 'percent'), stats.as_rows())
    console.blank()

    os.makedirs(opts.outdir, exist_ok=True)
    counts_file = opts.outfile_path('pair_counts.tsv')
    reps_file = opts.outfile_path('representatives.fq')
    tags_file = opts.outfile_path('tags.fq')
    stats_file = opts.outfile_path('scan_stats.tsv')

    with stopwatch.stage('Output'):
        npairs = emit(table, counts_file, reps_file, tags_file)

        run_info = OrderedDict()
        run_info['version'] = opts.version
        run_info['linker'] = config.linker
        run_info['marker'] = config.marker or ''
        run_info['max_mismatches'] = config.max_mismatches
        run_info['indels'] = config.indels
        run_info['flank'] = config.flank
        run_info['total_reads'] = stats.total
        run_info['paired_reads'] = stats.paired
        run_info['distinct_pairs'] = npairs
        output_scan_report(run_info, stats, stats_file)
        outputs = [counts_file, reps_file, tags_file, stats_file]

        if details is not None:
            outputs.append(opts.outfile_path('scan_detail.tsv'))
            output_scan_detail(details, outputs[-1])

    console.files(outputs)
    console.blank()
    console.timing(stopwatch)
    console.status('Completed in {:.1f}s'.format(stopwatch.total))
    console.blank()
    lg.info("y2hcount paircount complete (%s)" % fmtmins(stopwatch.total))
