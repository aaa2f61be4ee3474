"""
Module: batch_helpers.py
Description: Utility functions for batch operations.

Provides helper functions for splitting large event lists into
request-sized chunks and summing ingestion counters across chunks.

Key Components:
- chunk_list(): Split lists into smaller chunks
- sum_counters(): Aggregate numeric counters in chunk order

Dependencies: typing
Author: Analytics Platform Team
"""

from typing import Any, Dict, Iterable, List, Sequence, TypeVar

T = TypeVar('T')


def chunk_list(items: Sequence[T], chunk_size: int) -> List[List[T]]:
    """
    Split a sequence into smaller chunks of specified size.

    Args:
        items: Sequence to split into chunks
        chunk_size: Maximum size of each chunk

    Returns:
        List of chunks, where each chunk is a list of items

    Raises:
        ValueError: If chunk_size is not positive

    Example:
        >>> chunk_list([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]
    """
    if not isinstance(items, (list, tuple)):
        raise ValueError("items must be a list or tuple")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    chunks = []
    for i in range(0, len(items), chunk_size):
        chunks.append(list(items[i:i + chunk_size]))

    return chunks


def sum_counters(results: Iterable[Dict[str, Any]], keys: Sequence[str]) -> Dict[str, int]:
    """
    Sum integer counters across chunk results.

    Missing or None values count as zero.

    Example:
        >>> sum_counters([{'events': 2}, {'events': 3}], ['events'])
        {'events': 5}
    """
    totals = {key: 0 for key in keys}
    for result in results:
        for key in keys:
            totals[key] += int(result.get(key) or 0)
    return totals
