from batchcache.pipeline.context import BatchContext
from batchcache.pipeline.runner import BatchRunner
from batchcache.pipeline.unit import ProcessingUnit

__all__ = ["BatchContext", "BatchRunner", "ProcessingUnit"]
