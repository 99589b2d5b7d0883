from typing import Dict, Iterable, List

from leasemr.protocol import KeyValue

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193


def ihash(key: str) -> int:
    """
    32-bit FNV-1a of the UTF-8 key, masked to a non-negative 31-bit int.

    Unlike the built-in ``hash`` this is identical in every process, which the
    bucket assignment of different map workers relies on.
    """
    h = _FNV32_OFFSET
    for byte in key.encode("utf-8"):
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h & 0x7FFFFFFF


def bucket_for(key: str, reduce_count: int) -> int:
    return ihash(key) % reduce_count


def partition(pairs: Iterable[KeyValue], reduce_count: int) -> Dict[int, List[KeyValue]]:
    """
    Split map output into `reduce_count` buckets.

    Every bucket is present in the result, empty or not, and pairs keep their
    emission order inside a bucket.
    """
    if reduce_count < 1:
        raise ValueError("reduce_count must be at least 1")
    buckets: Dict[int, List[KeyValue]] = {i: [] for i in range(reduce_count)}
    for kv in pairs:
        buckets[bucket_for(kv.key, reduce_count)].append(kv)
    return buckets
