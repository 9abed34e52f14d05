"""
Distro registry.

The registry maps lower-cased os-release identifiers to strategy classes. It
is built once and never modified afterwards; every lookup returns a fresh
strategy instance.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from .variants import Amzn, Centos, Checker, Cos, Debian, Distro, Minikube, Ubuntu

# Order matters: fallback detection walks the checkers in this order, so
# more specific hosts come first (minikube and ubuntu also carry the files
# checked for their base distros).
DEFAULT_VARIANTS: tuple[tuple[str, type[Distro]], ...] = (
    ("minikube", Minikube),
    ("amzn", Amzn),
    ("centos", Centos),
    ("ubuntu", Ubuntu),
    ("debian", Debian),
    ("cos", Cos),
)


class DistroRegistry:
    """Immutable registry of distro strategies."""

    def __init__(self, variants: Iterable[tuple[str, type[Distro]]] = DEFAULT_VARIANTS) -> None:
        variants = list(variants)
        ids = [distro_id for distro_id, _ in variants]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate distro identifiers in registry: {ids}")
        self._variants = MappingProxyType({distro_id.lower(): cls for distro_id, cls in variants})

    def __contains__(self, distro_id: str) -> bool:
        return distro_id in self._variants

    def __iter__(self) -> Iterator[str]:
        return iter(self._variants)

    def __len__(self) -> int:
        return len(self._variants)

    def create(self, distro_id: str) -> Distro | None:
        """Instantiate the strategy registered for `distro_id`, if any."""
        cls = self._variants.get(distro_id)
        return cls() if cls else None

    def create_or_generic(self, distro_id: str) -> Distro:
        return self.create(distro_id) or Distro()

    def checkers(self) -> Iterator[tuple[str, Distro]]:
        """Yield fresh strategies implementing Checker, in priority order."""
        for distro_id in self._variants:
            distro = self.create(distro_id)
            if isinstance(distro, Checker):
                yield distro_id, distro

    def __str__(self) -> str:
        return f"DistroRegistry({', '.join(self._variants)})"


_default_registry: DistroRegistry | None = None


def get_distro_registry() -> DistroRegistry:
    """Get the process-wide registry, building it on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = DistroRegistry()
    return _default_registry
