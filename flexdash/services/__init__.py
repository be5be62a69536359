"""
Business Services
=================
Usage query pipeline and the latest-batch store.
"""

from flexdash.services.batch_store import LatestBatchStore, get_batch_store
from flexdash.services.pipeline import UsageQueryPipeline

__all__ = ["LatestBatchStore", "UsageQueryPipeline", "get_batch_store"]
