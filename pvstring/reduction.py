# -*- coding: utf-8 -*-
"""
This is the PVstring Package.
    first-fit reduction shared by Series and Parallel

Elements that are electrically identical except for one multiplicity are
merged into a single representative that carries the summed multiplicity.
The index maps relate positions of the original topology to the reduced
one in both directions.
"""

from __future__ import annotations

from typing import Any, Callable, List, NamedTuple, Optional, Sequence


class Reduction(NamedTuple):
    reduced: Any  # reduced Series or Parallel
    origin_to_reduced: List[int]  # reduced position of each original element
    reduced_to_origin: List[List[int]]  # original positions merged into each reduced element


def find(elements: Sequence, other, is_equivalent: Callable) -> Optional[int]:
    # first equivalent element in insertion order
    for k, element in enumerate(elements):
        if is_equivalent(element, other):
            return k
    return None


def reduce_elements(elements: Sequence, prepare: Callable, is_equivalent: Callable, merge: Callable):
    """
    first-fit reduction of a list of elements

    prepare(element) returns the independent copy that becomes a new
    representative; is_equivalent(representative, candidate) tests for a
    merge; merge(representative, candidate) adds the candidate's
    multiplicity into the representative in place.

    returns (representatives, origin_to_reduced, reduced_to_origin)
    """
    reduced = []
    origin_to_reduced = [0] * len(elements)
    reduced_to_origin = []

    for i, element in enumerate(elements):
        candidate = prepare(element)
        j = find(reduced, candidate, is_equivalent)
        if j is None:
            origin_to_reduced[i] = len(reduced)
            reduced.append(candidate)
            reduced_to_origin.append([i])
        else:
            merge(reduced[j], candidate)
            reduced_to_origin[j].append(i)
            origin_to_reduced[i] = j

    return reduced, origin_to_reduced, reduced_to_origin


def reduce_states(states: Sequence, reduced_to_origin: List[List[int]]) -> list:
    """
    states of the reduced elements taken from their first original element
    valid when merged elements share the same conditions
    """
    return [states[origin[0]] for origin in reduced_to_origin]
