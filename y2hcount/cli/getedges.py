# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

""" Y2HCount getedges

"""
import sys
import os
from collections import OrderedDict
import logging as lg

from . import SubcommandOptions, REPORTING_OPTS, configure_logging
from .console import Stopwatch
from ..core.alignments import AlignmentLoader
from ..core.edges import EdgeAggregator, read_counts
from ..core.errors import ConfigError
from ..core.reporter import output_edge_detail, output_edge_report, output_edges
from ..utils.helpers import format_minutes as fmtmins


class EdgeOptions(SubcommandOptions):

    OPTS = """
    - Input Options:
        - counts:
            positional: True
            help: Pair count table written by "y2hcount paircount".
        - alignments:
            positional: True
            help: Alignments of the paircount tag reads against the gene
                  library (SAM, gzipped SAM or BAM). Reference names must
                  start with the bait or prey prefix.
        - bait_prefix:
            default: bait_
            help: Reference name prefix of bait-eligible genes.
        - prey_prefix:
            default: prey_
            help: Reference name prefix of prey-eligible genes.
    - Filter Options:
        - min_mapq:
            type: int
            default: 0
            help: Tags whose best alignment has a lower MAPQ are ambiguous.
        - max_nm:
            type: int
            help: Tags whose best alignment has a larger edit distance (NM
                  tag) are unresolved. Unlimited by default.
        - max_hits:
            type: int
            default: 1
            help: Tags with more equally good alignments than this are
                  ambiguous.
        - allow_swapped:
            action: store_true
            help: Count pairs whose bait tag hits a prey gene and prey tag
                  hits a bait gene as an edge, instead of a role mismatch.
        - detail:
            action: store_true
            help: Also write the resolution of every pair to
                  <exp_tag>-edge_detail.tsv.
    """ + REPORTING_OPTS

    def __init__(self, args):
        super().__init__(args)
        if self.logfile is None:
            self.logfile = sys.stderr


def run(args):
    """Resolve tag alignments and aggregate pair counts into edges.

    Args:
        args: Parsed argparse namespace.
    """
    opts = EdgeOptions(args)
    console = configure_logging(opts)
    if opts.max_hits < 1:
        raise ConfigError(f'--max_hits must be >= 1, got {opts.max_hits}')
    lg.info('\n{}\n'.format(opts))
    stopwatch = Stopwatch()

    console.banner(opts.version, 'Bait-Prey Edge Reconstruction')
    console.section('Input', [
        ('Pair counts', os.path.basename(opts.counts)),
        ('Alignments', os.path.basename(opts.alignments)),
        ('Prefixes', '{} / {}'.format(opts.bait_prefix, opts.prey_prefix)),
    ])
    console.blank()

    lg.info('Loading alignments...')
    loader = AlignmentLoader(
        bait_prefix=opts.bait_prefix,
        prey_prefix=opts.prey_prefix,
        min_mapq=opts.min_mapq,
        max_nm=opts.max_nm,
        max_hits=opts.max_hits,
    )
    with stopwatch.stage('Alignments'):
        resolutions = loader.load(opts.alignments)
    _elapsed = stopwatch.stages[-1][1]
    lg.info(f'Loaded alignments in {fmtmins(_elapsed)}')
    console.status(
        'Loading alignments... done ({:.1f}s)'.format(_elapsed),
        '{:,} tag reads -- {:,} resolved, {:,} records skipped'.format(
            len(resolutions), loader.run_info['resolved'], loader.run_info['skipped_records']),
    )
    console.blank()

    lg.info('Aggregating edges...')
    with stopwatch.stage('Edges'):
        aggregator = EdgeAggregator(resolutions, allow_swapped=opts.allow_swapped)
        result = aggregator.aggregate(read_counts(opts.counts), with_details=opts.detail)
    diag = result.diagnostics
    lg.info(str(diag))

    console.section('Pairs')
    console.table(('category', 'pairs', 'reads', 'percent'), diag.as_rows())
    console.blank()

    os.makedirs(opts.outdir, exist_ok=True)
    outputs = [opts.outfile_path('edges.tsv'), opts.outfile_path('edge_stats.tsv')]
    with stopwatch.stage('Output'):
        output_edges(result.edges, outputs[0])

        run_info = OrderedDict()
        run_info['version'] = opts.version
        for k in ('records', 'skipped_records', 'tag_reads'):
            run_info[k] = loader.run_info[k]
        run_info['total_pairs'] = diag.total_records
        run_info['total_reads'] = diag.total_reads
        run_info['orphan_tag_reads'] = diag.orphan_tag_reads
        run_info['edges'] = len(result.edges)
        output_edge_report(run_info, diag, outputs[1])

        if opts.detail:
            outputs.append(opts.outfile_path('edge_detail.tsv'))
            output_edge_detail(result.details, outputs[2])

    console.files(outputs)
    console.blank()
    console.timing(stopwatch)
    console.status('Completed in {:.1f}s'.format(stopwatch.total))
    console.blank()
    lg.info("y2hcount getedges complete (%s)" % fmtmins(stopwatch.total))
