"""Registry binding external collaborators (LLM, STT) to task keys."""
from __future__ import annotations

from typing import Any, Callable, Dict


class ModelRegistry:
    """Owned mapping of task keys to callables.

    The API server binds the HTTP-backed implementations at startup; tests
    bind fakes. ``clear`` drops every binding so a process can rebind.
    """

    def __init__(self) -> None:
        self._bindings: Dict[str, Callable[..., Any]] = {}

    def bind(self, key: str, fn: Callable[..., Any]) -> None:
        self._bindings[key] = fn

    def get(self, key: str) -> Callable[..., Any]:
        """Return the callable bound to ``key``.

        Raises:
            KeyError: If no callable has been bound for ``key``.
        """

        if key not in self._bindings:
            raise KeyError(f"Model not bound in registry: {key}")
        return self._bindings[key]

    def unbind(self, key: str) -> None:
        self._bindings.pop(key, None)

    def is_bound(self, key: str) -> bool:
        return key in self._bindings

    def clear(self) -> None:
        self._bindings.clear()


default_registry = ModelRegistry()


def bind_model(key: str, fn: Callable[..., Any]) -> None:
    """Bind a callable implementation to a registry key."""
    default_registry.bind(key, fn)


def get_model(key: str) -> Callable[..., Any]:
    """Retrieve a callable from the default registry."""
    return default_registry.get(key)


QUESTION_KEY = "models.question_generator"
SCORING_KEY = "models.answer_scorer"
STT_KEY = "models.speech_to_text"
