# This file is part of Y2HCount.
#
# Licensed under MIT License.

import argparse
import logging
import os
from collections import OrderedDict

import yaml

from ..core.errors import ConfigError
from .console import Console

# Option types that may be named in OPTS
_SAFE_TYPES = {
    'int': int,
    'float': float,
    'str': str,
    "argparse.FileType('w')": argparse.FileType('w'),
}


def _parse_yaml_opts(opts_yaml):
    """OPTS text -> OrderedDict {group: OrderedDict {option: argparse settings}}"""
    groups = OrderedDict()
    for grp in yaml.load(opts_yaml, Loader=yaml.SafeLoader):
        grp_name, args = list(grp.items())[0]
        groups[grp_name] = OrderedDict(list(arg.items())[0] for arg in args)
    return groups


def _argument(name, settings):
    """(flag, kwargs) for ``add_argument``, or None for hidden options."""
    kwargs = dict(settings)
    if kwargs.pop('hide', False):
        return None
    if kwargs.pop('positional', False):
        flag = name
    else:
        flag = f'-{name}' if len(name) == 1 else f'--{name}'
    if 'type' in kwargs:
        if kwargs['type'] not in _SAFE_TYPES:
            raise ValueError(
                f"Unsupported type '{kwargs['type']}' in CLI option '{name}'. "
                f'Allowed: {list(_SAFE_TYPES)}'
            )
        kwargs['type'] = _SAFE_TYPES[kwargs['type']]
    return flag, kwargs


class SubcommandOptions:
    """Options of one subcommand, declared as YAML in ``OPTS``.

    The parsed argparse namespace is copied onto the instance; a ``config``
    YAML file then fills in whatever was left at its default.
    """

    OPTS = """
    - Input Options:
        - infile:
            positional: True
            help: Input file.
    """

    def __init__(self, args):
        self.opt_groups = _parse_yaml_opts(self.OPTS)
        self.opt_names = [n for grp in self.opt_groups.values() for n in grp]
        for k, v in vars(args).items():
            setattr(self, k, v)
        if getattr(self, 'config', None):
            self.apply_config_file(self.config)

    @classmethod
    def add_arguments(cls, parser):
        for group_name, args in _parse_yaml_opts(cls.OPTS).items():
            argparse_grp = parser.add_argument_group(group_name, '')
            for arg_name, settings in args.items():
                argument = _argument(arg_name, settings)
                if argument is not None:
                    argparse_grp.add_argument(argument[0], **argument[1])

    def option_settings(self, name):
        for args in self.opt_groups.values():
            if name in args:
                return args[name]
        raise KeyError(name)

    def option_default(self, name):
        """Parser default of option `name` as declared in OPTS."""
        settings = self.option_settings(name)
        if settings.get('action') == 'store_true':
            return settings.get('default', False)
        return settings.get('default')

    def _config_value(self, path, name, value):
        """`value` converted and checked the way the parser would."""
        settings = self.option_settings(name)
        try:
            if 'type' in settings and value is not None:
                value = _SAFE_TYPES[settings['type']](value)
        except (TypeError, ValueError, argparse.ArgumentTypeError):
            raise ConfigError(f'{path}: bad value for "{name}": {value!r}')
        if settings.get('action') == 'store_true' and not isinstance(value, bool):
            raise ConfigError(f'{path}: bad value for "{name}": {value!r} (expected true or false)')
        if 'choices' in settings and value not in settings['choices']:
            raise ConfigError(f'{path}: bad value for "{name}": {value!r} (choose from {settings["choices"]})')
        return value

    def apply_config_file(self, path):
        """Fill options from a YAML mapping of option names to values.

        Options given on the command line (i.e. not at their default) win.
        """
        with open(path) as fh:
            values = yaml.load(fh, Loader=yaml.SafeLoader) or {}
        if not isinstance(values, dict):
            raise ConfigError(f'{path}: expected a mapping of option names to values')
        for k, v in values.items():
            if k not in self.opt_names or k == 'config':
                raise ConfigError(f'{path}: unknown option "{k}"')
            if getattr(self, k, None) == self.option_default(k):
                setattr(self, k, self._config_value(path, k, v))

    def outfile_path(self, suffix):
        return os.path.join(self.outdir, f'{self.exp_tag}-{suffix}')

    def __str__(self):
        ret = ['{:34}{}'.format('Version:', getattr(self, 'version', 'Not set'))]
        for group_name, args in self.opt_groups.items():
            ret.append(group_name)
            for arg_name in args:
                v = getattr(self, arg_name, 'Not set')
                if hasattr(v, 'name'):
                    v = v.name
                ret.append('    {:30}{}'.format(arg_name + ':', v))
        return '\n'.join(ret)


# Options shared by every subcommand
REPORTING_OPTS = """
    - Reporting Options:
        - config:
            help: YAML file of option values. Options given on the command
                  line take precedence.
        - quiet:
            action: store_true
            help: Silence (most) output.
        - verbose:
            action: store_true
            help: Show detailed progress and timing.
        - debug:
            action: store_true
            help: Print debug messages.
        - logfile:
            type: argparse.FileType('w')
            help: Log output to this file.
        - outdir:
            default: .
            help: Output directory.
        - exp_tag:
            default: y2hcount
            help: Experiment tag, used as prefix of all output files.
"""

_LOGFMT = '%(asctime)s %(levelname)-8s %(message)s'
_DEBUG_LOGFMT = '%(asctime)s %(levelname)-8s %(message)-60s (%(funcName)s in %(filename)s:%(lineno)d)'

# verbosity -> (console level, log level, log format); stderr stays at
# WARNING unless asked for more
_VERBOSITY = {
    'quiet': (Console.QUIET, logging.WARNING, _LOGFMT),
    'normal': (Console.NORMAL, logging.WARNING, _LOGFMT),
    'verbose': (Console.VERBOSE, logging.INFO, _LOGFMT),
    'debug': (Console.DEBUG, logging.DEBUG, _DEBUG_LOGFMT),
}


def _verbosity(opts):
    for name in ('quiet', 'debug', 'verbose'):
        if getattr(opts, name, False):
            return name
    return 'normal'


def configure_logging(opts):
    """Configure logging and create the Console for stdout output.

    Args:
        opts: SubcommandOptions object. Important attributes are "quiet",
              "verbose", "debug", and "logfile".
    Returns:
        Console
    """
    console_level, loglev, logfmt = _VERBOSITY[_verbosity(opts)]
    if getattr(opts, 'debug', False):
        loglev, logfmt = logging.DEBUG, _DEBUG_LOGFMT
    logging.basicConfig(level=loglev, format=logfmt, datefmt='%Y-%m-%d %H:%M:%S', stream=opts.logfile)
    return Console(level=console_level)
