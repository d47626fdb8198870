"""Training-time serving components.

This module exposes PyTorch-compatible loaders over recorded regions.
It connects trace containers to surrogate model training pipelines.
"""
