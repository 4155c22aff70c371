"""Bayesian network data model and CPT index arithmetic."""

from .model import Edge, Network, Node

__all__ = ["Edge", "Network", "Node"]
