"""
Tests for the dependency injection container and service registry.
"""

import pytest

from src.core.container import ServiceContainer, get_container, reset_container


class TestServiceContainer:
    """Test the ServiceContainer class."""

    def test_register_and_get_service(self):
        container = ServiceContainer()
        container.register("engine", lambda c: {"name": "engine"})
        assert container.get("engine") == {"name": "engine"}
        assert container.is_created("engine")

    def test_instance_built_once(self):
        container = ServiceContainer()
        calls = []

        def factory(c):
            calls.append(1)
            return object()

        container.register("svc", factory)
        assert container.get("svc") is container.get("svc")
        assert len(calls) == 1

    def test_factory_receives_container(self):
        container = ServiceContainer()
        container.register("a", lambda c: "A")
        container.register("b", lambda c: c.get("a") + "B")
        assert container.get("b") == "AB"

    def test_register_instance_overrides_factory(self):
        container = ServiceContainer()
        container.register("svc", lambda c: "real")
        container.register_instance("svc", "fake")
        assert container.get("svc") == "fake"

    def test_reregister_clears_cached_instance(self):
        container = ServiceContainer()
        container.register("svc", lambda c: "first")
        container.get("svc")
        container.register("svc", lambda c: "second")
        assert container.get("svc") == "second"

    def test_unknown_service(self):
        with pytest.raises(KeyError):
            ServiceContainer().get("missing")

    def test_has_and_clear(self):
        container = ServiceContainer()
        container.register("svc", lambda c: 1)
        assert container.has("svc")
        container.clear()
        assert not container.has("svc")


class _Closable:
    def __init__(self, log, name, fail=False):
        self.log = log
        self.name = name
        self.fail = fail

    async def aclose(self):
        if self.fail:
            raise RuntimeError("close failed")
        self.log.append(self.name)


class TestShutdown:
    async def test_closes_created_services_newest_first(self):
        log = []
        container = ServiceContainer()
        container.register("first", lambda c: _Closable(log, "first"))
        container.register("second", lambda c: _Closable(log, "second"))
        container.register("never_built", lambda c: _Closable(log, "never_built"))
        container.register_instance("plain", object())
        container.get("first")
        container.get("second")

        await container.shutdown()

        assert log == ["second", "first"]
        assert not container.is_created("first")
        # Factories survive shutdown
        assert container.has("first")

    async def test_close_error_does_not_stop_others(self):
        log = []
        container = ServiceContainer()
        container.register_instance("ok", _Closable(log, "ok"))
        container.register_instance("broken", _Closable(log, "broken", fail=True))

        await container.shutdown()

        assert log == ["ok"]


def test_global_container_reset():
    first = get_container()
    reset_container()
    assert get_container() is not first
    reset_container()


class TestServiceRegistry:
    def test_setup_services_wires_engine_and_tasks(self, session_factory, monkeypatch):
        from src.core import services as services_module
        from src.core.services import Services, get_service, setup_services
        from src.services.notifications import (
            DueItemNotificationTask,
            LoggingDispatcher,
            PendingNotificationTask,
        )
        from src.services.srs import ReviewEngine

        monkeypatch.setattr(
            "src.core.database.get_session_factory", lambda: session_factory
        )
        reset_container()
        try:
            setup_services()

            assert isinstance(get_service(Services.REVIEW_ENGINE), ReviewEngine)
            assert isinstance(get_service(Services.DISPATCHER), LoggingDispatcher)

            due = get_service(Services.DUE_ITEM_TASK)
            pending = get_service(Services.PENDING_NOTIFICATION_TASK)
            assert isinstance(due, DueItemNotificationTask)
            assert isinstance(pending, PendingNotificationTask)
            # Scan and retry pass share one lock
            assert due._lock is pending._lock
            assert services_module.get_container().has(Services.CRON_MANAGER)
        finally:
            reset_container()

    def test_http_dispatcher_when_gateway_configured(self, monkeypatch):
        from src.core.config import Settings
        from src.core.services import Services, get_service, setup_services
        from src.services.notifications import HttpPushDispatcher

        reset_container()
        try:
            setup_services()
            get_container().register_instance(
                Services.SETTINGS,
                Settings(push_gateway_url="https://push.example.test/send"),
            )
            dispatcher = get_service(Services.DISPATCHER)
            assert isinstance(dispatcher, HttpPushDispatcher)
            assert dispatcher.gateway_url == "https://push.example.test/send"
        finally:
            reset_container()
