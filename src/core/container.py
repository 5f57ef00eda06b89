"""
Service container.

One instance of each long-lived service (review engine, notification tasks,
push dispatcher, cron manager) is built on first use and shared by the API
routes and the cron tasks. Factories take the container so they can pull in
what they depend on:

    container.register(Services.REVIEW_ENGINE,
                       lambda c: ReviewEngine(c.get(Services.UOW_FACTORY)))

Tests put fakes in with ``register_instance`` before anything resolves them.
On shutdown every created service that owns a connection (``aclose``) is
closed, newest first.
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Factory = Callable[["ServiceContainer"], Any]


class ServiceContainer:
    def __init__(self) -> None:
        self._factories: Dict[str, Factory] = {}
        self._instances: Dict[str, Any] = {}
        # Names in the order their instances were created
        self._created: List[str] = []

    def register(self, name: str, factory: Factory) -> None:
        """Register *factory* for *name*, dropping any instance already built."""
        self._factories[name] = factory
        self._forget(name)
        logger.debug(f"Registered service: {name}")

    def register_instance(self, name: str, instance: Any) -> None:
        self._forget(name)
        self._instances[name] = instance
        self._created.append(name)
        logger.debug(f"Registered instance: {name}")

    def get(self, name: str) -> Any:
        """Return the instance for *name*, building it on first access.

        Raises:
            KeyError: Nothing is registered under *name*.
        """
        if name in self._instances:
            return self._instances[name]
        if name not in self._factories:
            raise KeyError(f"Service '{name}' is not registered")

        instance = self._factories[name](self)
        self._instances[name] = instance
        self._created.append(name)
        logger.debug(f"Created service: {name} ({type(instance).__name__})")
        return instance

    def has(self, name: str) -> bool:
        return name in self._factories or name in self._instances

    def is_created(self, name: str) -> bool:
        return name in self._instances

    async def shutdown(self) -> None:
        """Close created services that expose ``aclose``, newest first."""
        for name in reversed(self._created):
            closer = getattr(self._instances.get(name), "aclose", None)
            if closer is None:
                continue
            try:
                result = closer()
                if inspect.isawaitable(result):
                    await result
                logger.info(f"Closed service: {name}")
            except Exception as e:
                logger.error(f"Error closing service {name}: {e}", exc_info=True)
        self._instances.clear()
        self._created.clear()

    def clear(self) -> None:
        self._factories.clear()
        self._instances.clear()
        self._created.clear()

    def _forget(self, name: str) -> None:
        self._instances.pop(name, None)
        if name in self._created:
            self._created.remove(name)


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """Start over with an empty container."""
    global _container
    if _container is not None:
        _container.clear()
    _container = ServiceContainer()
