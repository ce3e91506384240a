# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Exceptions raised by the counting and edge-reconstruction engines."""


class Y2HCountError(ValueError):
    """Base class for errors reported to the operator."""


class ConfigError(Y2HCountError):
    """Invalid run configuration."""


class MalformedInputError(Y2HCountError):
    """A read record violates the expected structure.

    Args:
        path: File the record was read from.
        record: 1-based index of the offending record in that file.
        message: What is wrong with the record.
    """

    def __init__(self, path, record, message):
        self.path = path
        self.record = record
        super().__init__(f'{path}: record {record}: {message}')


class AlignmentParseError(Y2HCountError):
    """An external alignment record could not be parsed."""
