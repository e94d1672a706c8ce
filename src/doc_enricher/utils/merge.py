"""Field-merge and ranking helpers.

Metadata fields are multi-valued lists. Handlers either overwrite a field or append
to it; appends keep the existing values first, then the new ones, in order.
"""

from __future__ import annotations
from typing import Hashable, List, Sequence, Tuple, TypeVar

from ..pipeline.context import Metadata

K = TypeVar("K", bound=Hashable)


def merge_field(metadata: Metadata, field_name: str, values: Sequence[str], overwrite: bool) -> None:
    if overwrite:
        metadata.set_string(field_name, *values)
    else:
        metadata.add_string(field_name, *values)


def rank_scores(scores: Sequence[Tuple[K, float]], order: Sequence[K] = ()) -> List[Tuple[K, float]]:
    """Sort (key, score) pairs by descending score.

    Equal scores keep the position of the key in `order`; keys missing from `order`
    come after those present, in their incoming order.
    """
    position = {k: i for i, k in enumerate(order)}
    indexed = list(enumerate(scores))
    indexed.sort(key=lambda item: (-item[1][1], position.get(item[1][0], len(position)), item[0]))
    return [pair for _, pair in indexed]
