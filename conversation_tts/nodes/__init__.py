"""
Graph nodes for the conversation pipeline
"""
from .segmentation import segmentation_node
from .synthesis import synthesis_node
from .combine import combine_node

__all__ = [
    "segmentation_node",
    "synthesis_node",
    "combine_node",
]
