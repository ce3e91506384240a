# This file is part of Y2HCount.
#
# Licensed under MIT License.

from itertools import islice

_COMPLEMENT = str.maketrans('ACGTNacgtn', 'TGCANtgcan')


def format_minutes(seconds):
    """Human readable elapsed time."""
    if seconds < 60:
        return f'{seconds:.2f} sec.'
    m, s = divmod(int(round(seconds)), 60)
    return f'{m:d} min. {s:02d} sec.'


def revcomp(seq):
    """Reverse complement of a nucleotide string."""
    return seq.translate(_COMPLEMENT)[::-1]


def chunked(iterable, size):
    """Yield successive lists of at most `size` items from `iterable`."""
    it = iter(iterable)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


def roundrobin(*iterables):
    """Interleave iterables index-wise: a1, b1, a2, b2, ...

    Iterables of unequal length are exhausted independently.
    """
    iterators = [iter(it) for it in iterables]
    while iterators:
        alive = []
        for it in iterators:
            try:
                yield next(it)
            except StopIteration:
                continue
            alive.append(it)
        iterators = alive


def percent(count, total):
    if total == 0:
        return '0%'
    return '{:.2f}%'.format(count * 100 / total)
