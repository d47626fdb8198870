"""Region storage layer.

This module persists per-region input/output tensor streams in a chunked
container file and reads them back for training pipelines.
"""
