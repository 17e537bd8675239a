"""
Data structures for tree fitting.

The sorted per-feature views that the split search and the tree builder
consume, and the partition step that keeps them sorted across splits.
"""
from data_structures.feature_view import Dataset, FeatureView, partition_dataset, prepare_dataset

__all__ = ["Dataset", "FeatureView", "partition_dataset", "prepare_dataset"]
