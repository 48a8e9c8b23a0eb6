"""Vector helpers shared by retrieval and profile aggregation"""
from typing import List, Sequence
import numpy as np

from cinematch.exceptions import DimensionMismatchError


def average_embeddings(embeddings: Sequence[Sequence[float]]) -> List[float]:
    """
    Component-wise arithmetic mean of equally sized embeddings.

    Raises:
        ValueError: no embeddings given
        DimensionMismatchError: embeddings differ in length
    """
    if not embeddings:
        raise ValueError("At least one embedding is required")

    expected = len(embeddings[0])
    for embedding in embeddings[1:]:
        if len(embedding) != expected:
            raise DimensionMismatchError(expected, len(embedding))

    return np.asarray(embeddings, dtype=float).mean(axis=0).tolist()
