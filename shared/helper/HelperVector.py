"""Vector helpers shared by the embedding clients, ingestion and retrieval."""

import math
from typing import Any

from shared.errors import InvalidEmbeddingError


def normalize_vector(vector: list[float]) -> list[float]:
    """Scale a vector to unit Euclidean length.

    A zero vector is returned unchanged.

    Args:
        vector (list[float]): The vector to normalise.

    Returns:
        list[float]: A new vector with norm 1, or the input values for a zero vector.
    """
    norm = math.sqrt(sum(val * val for val in vector))
    if norm == 0:
        return list(vector)
    return [val / norm for val in vector]


def is_numeric(val: Any) -> bool:
    # bool is an int subclass but never a valid embedding component
    return isinstance(val, (int, float)) and not isinstance(val, bool) and math.isfinite(val)


def validate_vector(raw: Any, dimension: int) -> list[float]:
    """Check that a raw embedding payload is a numeric vector of the expected size.

    Args:
        raw (Any): The candidate vector as decoded from JSON.
        dimension (int): The required vector length.

    Returns:
        list[float]: The vector with all components converted to float.

    Raises:
        InvalidEmbeddingError: If raw is not a list, contains non-numeric values,
            or has the wrong length.
    """
    if not isinstance(raw, list):
        raise InvalidEmbeddingError(f"Embedding is not an array (got {type(raw).__name__}).")
    if not all(is_numeric(val) for val in raw):
        raise InvalidEmbeddingError("Embedding contains non-numeric values.")
    if len(raw) != dimension:
        raise InvalidEmbeddingError(f"Invalid embedding length: {len(raw)}, expected {dimension}.")
    return [float(val) for val in raw]
