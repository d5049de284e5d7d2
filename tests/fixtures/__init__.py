"""Test fixtures for scnetprep.

Provides mock data generators and test utilities.
"""

from .mock_counts import (
    create_mock_counts,
    create_clustered_counts,
    create_mock_activity,
    create_mock_regulon,
)

__all__ = [
    "create_mock_counts",
    "create_clustered_counts",
    "create_mock_activity",
    "create_mock_regulon",
]
