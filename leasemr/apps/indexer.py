"""Inverted index: for each word, the sorted list of documents containing it."""
import re
from typing import Iterator, List, Tuple

_WORD = re.compile(r"[^\W\d_]+")


def map_func(filename: str, contents: str) -> Iterator[Tuple[str, str]]:
    for word in sorted(set(_WORD.findall(contents))):
        yield word, filename


def reduce_func(key: str, values: List[str]) -> str:
    documents = sorted(set(values))
    return f"{len(documents)} {','.join(documents)}"
