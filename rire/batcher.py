import itertools
from typing import Iterable, Iterator, List, Mapping

from rire.structures import Entry


def chunked(seq: Iterable, n: int) -> Iterator[list]:
    if n < 1:
        raise ValueError(f"Batch size must be positive, got {n}")
    it = iter(seq)
    while True:
        chunk = list(itertools.islice(it, n))
        if not chunk:
            break
        yield chunk


def partition(entries: Mapping[str, str], batch_size: int) -> List[List[Entry]]:
    """Split entries into ordered, contiguous batches of at most ``batch_size``."""
    return list(chunked(entries.items(), batch_size))
