#! /usr/bin/env python
# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

""" Main functionality of Y2HCount

"""
import sys
import os
import argparse
import errno
import logging as lg

from y2hcount import __version__
from .cli import paircount as cli_paircount
from .cli import getedges as cli_getedges
from .core.errors import Y2HCountError


USAGE = ''' %(prog)s <command> [<args>]

The most commonly used commands are:
   paircount      Find the linker in reads and count bait-prey tag pairs
   getedges       Aggregate pair counts into bait-prey gene edges
   test           Generate a command line for testing

'''

def generate_test_command(args):
    _base = os.path.dirname(os.path.abspath(__file__))
    _data_path = os.path.join(_base, 'data')
    _fqpath = os.path.join(_data_path, 'reads.fq')
    if not os.path.exists(_fqpath):
        raise FileNotFoundError(
            errno.ENOENT, os.strerror(errno.ENOENT), _fqpath
        )
    print('y2hcount paircount %s --linker GTTGGATAAGATATCGC --flank 13' % _fqpath, file=sys.stdout)


def build_parser():
    parser = argparse.ArgumentParser(
        description='Bait-prey interaction counts from yeast two-hybrid library screens',
    )
    parser.add_argument('--version',
        action='version',
        version=__version__,
        default=__version__,
    )

    subparser = parser.add_subparsers(help='Sub-command help', dest='subcommand')

    ''' Parser for paircount '''
    paircount_parser = subparser.add_parser('paircount',
        description='''Find the linker in reads and count bait-prey tag pairs''',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    cli_paircount.PairCountOptions.add_arguments(paircount_parser)
    paircount_parser.set_defaults(func=cli_paircount.run)

    ''' Parser for getedges '''
    getedges_parser = subparser.add_parser('getedges',
        description='''Aggregate pair counts into bait-prey gene edges''',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    cli_getedges.EdgeOptions.add_arguments(getedges_parser)
    getedges_parser.set_defaults(func=cli_getedges.run)

    ''' Parser for test '''
    test_parser = subparser.add_parser('test',
        description='''Print a test command''',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    test_parser.set_defaults(func=lambda args: generate_test_command(args))
    return parser


def main():
    if len(sys.argv) == 1:
        empty_parser = argparse.ArgumentParser(
            description='Bait-prey interaction counts from yeast two-hybrid library screens',
            usage=USAGE,
        )
        empty_parser.print_help(sys.stderr)
        sys.exit(1)

    args = build_parser().parse_args()
    try:
        args.func(args)
    except Y2HCountError as exc:
        lg.error(str(exc))
        print(f'Error: {exc}', file=sys.stderr)
        sys.exit(1)

if __name__ == '__main__':
    main()
