# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Report generation for paircount and getedges.

Functions accept individual data pieces rather than option objects so the
subcommands and the tests can call them directly.
"""

import pandas as pd

from .emitter import atomic_output

EDGE_COLUMNS = ['bait_gene', 'prey_gene', 'count']
SCAN_DETAIL_COLUMNS = ['read', 'outcome', 'strand', 'offset', 'mismatches']


def _runinfo_comment(run_info):
    _comment = ['## RunInfo']
    _comment += ['{}:{}'.format(*tup) for tup in run_info.items()]
    return '\t'.join(_comment) + '\n'


def sorted_edges(edges):
    """Edges as rows, by descending count then gene names."""
    return sorted(((b, p, c) for (b, p), c in edges.items()), key=lambda t: (-t[2], t[0], t[1]))


def output_scan_report(run_info, stats, stats_filename):
    """Write the per-read outcome table.

    Args:
        run_info: OrderedDict of run parameters and totals.
        stats: ScanStats from the counting phase.
        stats_filename: Path for the stats TSV.
    """
    _report = pd.DataFrame(stats.as_rows(), columns=['outcome', 'reads', 'percent'])
    with atomic_output(stats_filename) as outh:
        outh.write(_runinfo_comment(run_info))
        _report.to_csv(outh, sep='\t', index=False)


def output_edges(edges, edges_filename):
    _edges = pd.DataFrame(sorted_edges(edges), columns=EDGE_COLUMNS)
    with atomic_output(edges_filename) as outh:
        _edges.to_csv(outh, sep='\t', index=False)
    return len(_edges)


def output_edge_report(run_info, diagnostics, stats_filename):
    """Write diagnostic totals of the edge reconstruction."""
    _report = pd.DataFrame(diagnostics.as_rows(), columns=['category', 'pairs', 'reads', 'percent'])
    _sides = pd.DataFrame(
        {
            'bait_side': pd.Series(diagnostics.bait_side, dtype='int64'),
            'prey_side': pd.Series(diagnostics.prey_side, dtype='int64'),
        }
    ).fillna(0).astype('int64')
    _sides.index.name = 'status'
    with atomic_output(stats_filename) as outh:
        outh.write(_runinfo_comment(run_info))
        _report.to_csv(outh, sep='\t', index=False)
        outh.write('\n')
        _sides.sort_index().to_csv(outh, sep='\t')


def output_edge_detail(details, detail_filename):
    _detail = pd.DataFrame(
        details,
        columns=['bait_tag', 'prey_tag', 'count', 'bait_resolution', 'prey_resolution', 'category'],
    )
    with atomic_output(detail_filename) as outh:
        _detail.to_csv(outh, sep='\t', index=False)


def output_scan_detail(details, detail_filename):
    """Write one row per read: outcome and, if found, the linker hit."""
    _detail = pd.DataFrame(
        [(d.read, d.outcome.value, d.strand, d.offset, d.mismatches) for d in details],
        columns=SCAN_DETAIL_COLUMNS,
    )
    _detail['offset'] = _detail['offset'].astype('Int64')
    _detail['mismatches'] = _detail['mismatches'].astype('Int64')
    with atomic_output(detail_filename) as outh:
        _detail.to_csv(outh, sep='\t', index=False)
    return len(_detail)
