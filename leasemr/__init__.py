"""leasemr: a polling MapReduce coordinator and its stateless workers."""

__version__ = "1.0.0"
