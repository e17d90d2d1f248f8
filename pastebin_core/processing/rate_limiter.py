"""
Layered request admission.

Three layers apply to each request: a global budget, a budget for the
resource class (paste, document, config) and a budget for the
(resource class, verb) pair. Counters are moving windows from the ``limits``
package, keyed by layer and client, so capacity returns continuously as old
hits age out of the window.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter

from ..config import RateLimitConfig
from ..constants import HttpVerb, RouteCategory
from ..exceptions import RateLimited
from ..utils.logger import get_logger


@dataclass(frozen=True)
class Admit:
    """A request passed every layer. ``remaining`` is the tightest layer's headroom."""

    remaining: int


@dataclass(frozen=True)
class _Layer:
    name: str
    item: RateLimitItem


class RateLimiter:
    """
    Admission gate shared by every request handler of one process.

    Create one per process (or per test) and inject it; counters live in the
    given ``limits`` storage and vanish with it.
    """

    def __init__(self, config: RateLimitConfig, storage: Optional[Storage] = None):
        self.config = config
        self.storage = storage or MemoryStorage()
        self.strategy = MovingWindowRateLimiter(self.storage)
        self.logger = get_logger()
        # Test-then-hit across layers must not interleave with another request
        self._lock = threading.Lock()

        window = config.window_seconds
        self._global = _Layer("global", RateLimitItemPerSecond(config.global_limit, window))
        self._categories: Dict[RouteCategory, _Layer] = {
            category: _Layer(f"global_{category.value}", RateLimitItemPerSecond(config.category_budget(category), window))
            for category in RouteCategory
        }
        self._verbs: Dict[Tuple[RouteCategory, HttpVerb], _Layer] = {
            key: _Layer(f"{key[1].value}_{key[0].value}", RateLimitItemPerSecond(budget, window))
            for key, budget in config.verb_budgets().items()
        }

    def _layers_for(self, category: RouteCategory, verb: HttpVerb) -> List[_Layer]:
        layers = [self._global, self._categories[category]]
        verb_layer = self._verbs.get((category, verb))
        if verb_layer is not None:
            layers.append(verb_layer)
        return layers

    def check(self, client_key: str, category: RouteCategory, verb: HttpVerb) -> Admit:
        """
        Count one request against every applicable layer, or none of them.

        Raises:
            RateLimited: If any layer is exhausted. Nothing is counted in that case.
        """
        category = RouteCategory(category)
        verb = HttpVerb(verb)
        layers = self._layers_for(category, verb)

        with self._lock:
            for layer in layers:
                if not self.strategy.test(layer.item, layer.name, client_key):
                    retry_after = self._retry_after(layer, client_key)
                    self.logger.info(
                        "Request rate limited",
                        extra={
                            "client_key": client_key,
                            "category": category.value,
                            "verb": verb.value,
                            "layer": layer.name,
                            "retry_after": retry_after,
                        },
                    )
                    raise RateLimited(retry_after, layer=layer.name, category=category.value, verb=verb.value)

            for layer in layers:
                self.strategy.hit(layer.item, layer.name, client_key)

            remaining = min(
                self.strategy.get_window_stats(layer.item, layer.name, client_key).remaining
                for layer in layers
            )
        return Admit(remaining=remaining)

    def _retry_after(self, layer: _Layer, client_key: str) -> int:
        """
        Whole seconds until the oldest hit leaves the window.

        Rounded up with one second of slack: some storages report whole-second
        timestamps, and a client that waits this long must be admitted.
        """
        stats = self.strategy.get_window_stats(layer.item, layer.name, client_key)
        return max(1, math.ceil(stats.reset_time - time.time()) + 1)

    def reset(self) -> None:
        """Drop all counters."""
        self.storage.reset()
