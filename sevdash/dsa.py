"""
DSA utilities
=============

Small sorting/merging primitives used by the filter engine and the ranking
helpers.

Included:
- Merge Sort (stable, O(n log n)); ties keep their first-seen order, which the
  top-N rankings rely on
- Intersection / union of sorted id lists (two-pointer technique)
"""

from __future__ import annotations
from typing import Callable, List, TypeVar

T = TypeVar("T")

def merge_sort(arr: List[T], key: Callable[[T], object] = lambda x: x, reverse: bool = False) -> List[T]:
    """Stable merge sort. `reverse` keeps equal keys in input order."""
    if len(arr) <= 1:
        return arr[:]
    mid = len(arr) // 2
    left = merge_sort(arr[:mid], key=key, reverse=reverse)
    right = merge_sort(arr[mid:], key=key, reverse=reverse)
    return _merge(left, right, key=key, reverse=reverse)

def _merge(left: List[T], right: List[T], key: Callable[[T], object], reverse: bool) -> List[T]:
    out: List[T] = []
    i = j = 0
    while i < len(left) and j < len(right):
        a, b = key(left[i]), key(right[j])
        # on ties always take from the left half
        take_left = (a >= b) if reverse else (a <= b)
        if take_left:
            out.append(left[i]); i += 1
        else:
            out.append(right[j]); j += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out

def intersect_sorted(a: List[int], b: List[int]) -> List[int]:
    """Two-pointer intersection for sorted integer lists."""
    i = j = 0
    out: List[int] = []
    while i < len(a) and j < len(b):
        if a[i] == b[j]:
            out.append(a[i]); i += 1; j += 1
        elif a[i] < b[j]:
            i += 1
        else:
            j += 1
    return out

def union_sorted(a: List[int], b: List[int]) -> List[int]:
    """Merge two sorted integer lists, dropping duplicates."""
    i = j = 0
    out: List[int] = []
    while i < len(a) or j < len(b):
        if j >= len(b) or (i < len(a) and a[i] < b[j]):
            x = a[i]; i += 1
        elif i >= len(a) or b[j] < a[i]:
            x = b[j]; j += 1
        else:
            x = a[i]; i += 1; j += 1
        if not out or out[-1] != x:
            out.append(x)
    return out
