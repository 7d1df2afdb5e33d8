"""
Middleware adapter (controller/adapter.py)

Tests function and class middleware wrapping, container resolution and
error forwarding.
"""

import asyncio

import pytest

from switchyard.controller.adapter import MiddlewareAdapter, adapt_middleware
from switchyard.controller.guard import Continuation
from switchyard.controller.metadata import ClassMiddleware, FunctionMiddleware
from switchyard.di import ProviderNotFoundError
from switchyard.faults import MiddlewareFault
from switchyard.http import Response
from tests.conftest import make_request, settle


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, err=None):
        self.calls.append(err)


class Tagger:
    instances = 0

    def __init__(self):
        Tagger.instances += 1
        self.id = Tagger.instances

    def handler(self, request, response, next):
        request.state.setdefault("tags", []).append(self.id)
        next()


class Broken:
    handler = None


def audit(request, response, next):
    next()


class TestFunctionMiddleware:

    @pytest.mark.asyncio
    async def test_receives_guarded_continuation(self):
        seen = {}

        def mw(request, response, next):
            seen["next"] = next
            next()

        rec = Recorder()
        adapter = MiddlewareAdapter(FunctionMiddleware(mw))
        adapter(make_request(), Response(), rec)
        assert rec.calls == [None]
        assert isinstance(seen["next"], Continuation)

    @pytest.mark.asyncio
    async def test_sync_raise_forwarded(self):
        err = ValueError("bad")

        def mw(request, response, next):
            raise err

        rec = Recorder()
        adapt_middleware(mw)(make_request(), Response(), rec)
        assert rec.calls == [err]

    @pytest.mark.asyncio
    async def test_async_raise_forwarded(self):
        err = ValueError("bad later")

        async def mw(request, response, next):
            await asyncio.sleep(0)
            raise err

        rec = Recorder()
        adapt_middleware(mw)(make_request(), Response(), rec)
        assert rec.calls == []
        await settle()
        assert rec.calls == [err]

    def test_name_and_label(self):
        adapter = adapt_middleware(audit, route="GET /foo")
        assert adapter.name == "audit"
        assert adapter.label == "middleware audit on GET /foo"


class TestClassMiddleware:

    @pytest.mark.asyncio
    async def test_resolved_from_request_container(self, container):
        container.bind(Tagger, scope="request")
        request = make_request(container=container.create_request_scope())
        rec = Recorder()

        adapter = MiddlewareAdapter(ClassMiddleware(Tagger))
        adapter(request, Response(), rec)
        adapter(request, Response(), rec)

        tags = request.state["tags"]
        assert len(tags) == 2 and tags[0] == tags[1]
        assert rec.calls == [None, None]

    @pytest.mark.asyncio
    async def test_falls_back_to_build_container(self, container):
        container.bind(Tagger, scope="singleton")
        request = make_request()
        rec = Recorder()

        MiddlewareAdapter(ClassMiddleware(Tagger), container)(request, Response(), rec)
        assert rec.calls == [None]
        assert request.state["tags"] == [container.resolve(Tagger).id]

    @pytest.mark.asyncio
    async def test_string_token(self, container):
        container.bind_value("tagger", Tagger())
        rec = Recorder()
        adapt_middleware("tagger", container)(make_request(), Response(), rec)
        assert rec.calls == [None]

    @pytest.mark.asyncio
    async def test_unbound_class_forwards_resolution_error(self, container):
        rec = Recorder()
        MiddlewareAdapter(ClassMiddleware(Tagger), container)(make_request(), Response(), rec)
        assert len(rec.calls) == 1
        assert isinstance(rec.calls[0], ProviderNotFoundError)

    @pytest.mark.asyncio
    async def test_instance_without_handler(self, container):
        container.bind_value("broken", Broken())
        rec = Recorder()
        adapt_middleware("broken", container)(make_request(), Response(), rec)
        assert isinstance(rec.calls[0], MiddlewareFault)

    @pytest.mark.asyncio
    async def test_no_container(self):
        rec = Recorder()
        adapt_middleware("anything")(make_request(), Response(), rec)
        assert isinstance(rec.calls[0], MiddlewareFault)
