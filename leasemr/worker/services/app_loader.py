# Standard library imports for dynamic module loading
import importlib
import importlib.util
import os
from typing import Callable, Iterable, List, NamedTuple, Tuple

# Internal imports
from leasemr.protocol import AppLoadError, KeyValue
from leasemr.worker.utils.logger import get_logger

MapFunc = Callable[[str, str], Iterable[Tuple[str, str]]]
ReduceFunc = Callable[[str, List[str]], str]


class MapReduceApp(NamedTuple):
    """
    The pair of user functions a worker executes.

    - map_func(filename, contents) returns an iterable of (key, value) pairs
    - reduce_func(key, values) returns the merged value for that key

    Both are treated as opaque pure functions.
    """
    name: str
    map_func: MapFunc
    reduce_func: ReduceFunc

    def run_map(self, filename: str, contents: str) -> List[KeyValue]:
        """Call the map function and normalize its output to KeyValue pairs."""
        pairs = []
        for item in self.map_func(filename, contents):
            try:
                key, value = item
            except (TypeError, ValueError) as e:
                raise TypeError(f"map_func of {self.name} must yield (key, value) pairs, got {item!r}") from e
            pairs.append(KeyValue(str(key), str(value)))
        return pairs

    def run_reduce(self, key: str, values: List[str]) -> str:
        return str(self.reduce_func(key, values))


def load_app(target: str) -> MapReduceApp:
    """
    Load a map/reduce application.

    `target` is either an importable module path (``leasemr.apps.wordcount``)
    or the path of a ``.py`` file. The module must define callables named
    ``map_func`` and ``reduce_func``.

    Raises:
        AppLoadError: If the module cannot be imported or lacks either callable.
    """
    logger = get_logger(__name__)
    try:
        if target.endswith(".py") or os.sep in target:
            module = _load_from_file(target)
        else:
            module = importlib.import_module(target)
    except AppLoadError:
        raise
    except Exception as e:
        raise AppLoadError(f"Cannot import application {target!r}: {e}") from e

    functions = {}
    for attr in ("map_func", "reduce_func"):
        func = getattr(module, attr, None)
        if not callable(func):
            raise AppLoadError(f"Application {target!r} does not define a callable {attr}")
        functions[attr] = func

    logger.info(f"Loaded application {target}")
    return MapReduceApp(name=target, **functions)


def _load_from_file(path: str):
    if not os.path.isfile(path):
        raise AppLoadError(f"Application file {path!r} does not exist")
    module_name = os.path.splitext(os.path.basename(path))[0]
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise AppLoadError(f"Cannot load application file {path!r}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
