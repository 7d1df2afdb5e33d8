"""
Route builder (controller/builder.py)

Tests handler chain order, path joining, duplicate detection and the
independence of repeated compiles.
"""

import logging

import pytest

from switchyard.controller.adapter import MiddlewareAdapter
from switchyard.controller.builder import RouteBuilder, RouteRegistration
from switchyard.controller.decorators import GET, POST
from switchyard.controller.invoker import ActionInvoker
from switchyard.http import Application


def first(request, response, next):
    next()


def second(request, response, next):
    next()


def third(request, response, next):
    next()


class TestRouteBuilder:

    def test_handler_order(self, registry, container):
        @registry.controller("/foo", first, second)
        class FooController:
            @GET("/bar", third)
            def index(self, request, response, next):
                pass

        [route] = RouteBuilder(container).compile(registry)
        assert isinstance(route, RouteRegistration)
        assert [type(h) for h in route.handlers] == [
            MiddlewareAdapter, MiddlewareAdapter, MiddlewareAdapter, ActionInvoker,
        ]
        assert [h.name for h in route.handlers[:3]] == ["first", "second", "third"]
        assert route.handlers[-1].action_name == "index"
        assert route.method == "GET"
        assert route.path == "/foo/bar"
        assert route.controller is FooController

    def test_root_path_prefix(self, registry, container):
        @registry.controller("/")
        class RootController:
            @GET("foo")
            def index(self, request, response, next):
                pass

        [route] = RouteBuilder(container, root_path="/api/v1").compile(registry)
        assert route.path == "/api/v1/foo"
        assert route.label == "GET /api/v1/foo"

    def test_silent_completion_passed_to_invoker(self, registry, container):
        @registry.controller("/foo")
        class FooController:
            @GET("/")
            def index(self, request, response, next):
                pass

        [route] = RouteBuilder(container, silent_completion="next").compile(registry)
        assert route.handlers[-1].silent_completion == "next"

    def test_routes_in_registration_order(self, registry, container):
        @registry.controller("/b")
        class B:
            @POST("/")
            def create(self, request, response, next):
                pass

            @GET("/")
            def index(self, request, response, next):
                pass

        @registry.controller("/a")
        class A:
            @GET("/")
            def index(self, request, response, next):
                pass

        routes = RouteBuilder(container).compile(registry)
        assert [r.label for r in routes] == ["POST /b", "GET /b", "GET /a"]

    def test_duplicate_route_warns(self, registry, container, caplog):
        @registry.controller("/same")
        class One:
            @GET("/")
            def index(self, request, response, next):
                pass

        @registry.controller("/same")
        class Two:
            @GET("/")
            def index(self, request, response, next):
                pass

        with caplog.at_level(logging.WARNING, logger="switchyard.builder"):
            routes = RouteBuilder(container).compile(registry)

        assert len(routes) == 2
        warnings = [r for r in caplog.records if r.name == "switchyard.builder"]
        assert len(warnings) == 1
        assert "GET /same" in warnings[0].getMessage()

    def test_compile_twice_is_independent(self, registry, container):
        @registry.controller("/foo", first)
        class FooController:
            @GET("/")
            def index(self, request, response, next):
                pass

        builder = RouteBuilder(container)
        one, two = builder.compile(registry), builder.compile(registry)
        assert [r.label for r in one] == [r.label for r in two]
        assert one[0].handlers[0] is not two[0].handlers[0]
        assert len(registry.get(FooController).methods) == 1

    def test_mount_and_to_dict(self, registry, container):
        @registry.controller("/foo", first)
        class FooController:
            @GET("/")
            def index(self, request, response, next):
                pass

        [route] = RouteBuilder(container).compile(registry)
        app = Application(container)
        route.mount(app)
        assert [layer.name for layer in app.layers] == ["first", "FooController.index"]
        assert route.to_dict()["handlers"] == ["first", "FooController.index"]

    def test_empty_registry(self, registry, container):
        assert RouteBuilder(container).compile(registry) == []
