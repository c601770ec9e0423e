"""Registry for built-in backup disk constructors."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

__all__ = ["Constructor", "BACKEND_REGISTRY", "register_backend", "get_builtin", "list_builtins"]

# (context, config) -> backup disk handle
Constructor = Callable[[Any, Dict[str, Any]], Any]

BACKEND_REGISTRY: Dict[str, Constructor] = {}


def register_backend(kind: str) -> Callable[[Constructor], Constructor]:
    def decorator(factory: Constructor) -> Constructor:
        BACKEND_REGISTRY[kind.lower()] = factory
        return factory

    return decorator


def get_builtin(kind: str) -> Optional[Constructor]:
    """Return the built-in constructor for a kind, if any."""
    return BACKEND_REGISTRY.get(kind.lower())


def list_builtins() -> List[str]:
    """Return all built-in kind identifiers."""
    return sorted(BACKEND_REGISTRY.keys())
