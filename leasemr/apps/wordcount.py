"""Word count: how many times each word appears across all inputs."""
import re
from typing import Iterator, List, Tuple

_WORD = re.compile(r"[^\W\d_]+")


def map_func(filename: str, contents: str) -> Iterator[Tuple[str, str]]:
    for word in _WORD.findall(contents):
        yield word, "1"


def reduce_func(key: str, values: List[str]) -> str:
    return str(len(values))
