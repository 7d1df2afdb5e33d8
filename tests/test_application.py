"""
Host application (http/application.py, http/request.py, http/response.py, http/paths.py)

Tests layer matching, continuation dispatch, error-handler arity, the
default final stage and the ASGI entry point.
"""

import asyncio
import logging

import pytest

from switchyard.config import SwitchyardSettings
from switchyard.di import Container
from switchyard.faults import ResponseAlreadySentFault
from switchyard.http import Application, Request, Response, is_error_handler
from switchyard.http.paths import compile_path, join_paths, match_path
from tests.conftest import (
    ResponseCapture,
    client_for,
    dispatch,
    make_receive,
    make_request,
    make_scope,
    settle,
)


# ============================================================================
# Paths
# ============================================================================

class TestPaths:

    def test_join_paths(self):
        assert join_paths("/", "foo") == "/foo"
        assert join_paths("/api/", "/users/", "/") == "/api/users"
        assert join_paths("", "", "") == "/"

    def test_params(self):
        pattern = compile_path("/users/{id}/posts/{post_id}")
        assert match_path(pattern, "/users/7/posts/9/") == {"id": "7", "post_id": "9"}
        assert match_path(pattern, "/users/7") is None

    def test_prefix_match(self):
        pattern = compile_path("/api", prefix=True)
        assert match_path(pattern, "/api/users") == {}
        assert match_path(pattern, "/apiary") is None
        assert match_path(compile_path("/", prefix=True), "/anything") == {}


# ============================================================================
# Request / Response
# ============================================================================

class TestRequestResponse:

    def test_request_view(self):
        scope = make_scope("post", "/items", "a=1&a=2&b=", headers=[("X-Token", "abc")])
        request = Request(scope, b"raw")
        assert request.method == "POST"
        assert request.header("x-token") == "abc"
        assert request.query == {"a": ["1", "2"], "b": [""]}
        assert request.query_param("a") == "1"
        assert request.query_param("missing", "d") == "d"
        assert request.body == b"raw"

    def test_send_variants(self):
        assert Response().send("<p>hi</p>").headers["content-type"] == "text/html; charset=utf-8"
        assert Response().send(b"\x00").headers["content-type"] == "application/octet-stream"
        assert Response().send([1, 2]).body == b"[1,2]"
        empty = Response().send()
        assert empty.body == b"" and empty.headers["content-length"] == "0"

    def test_explicit_content_type_kept(self):
        response = Response().set_header("Content-Type", "text/plain").send("x")
        assert response.headers["content-type"] == "text/plain"

    def test_send_status(self):
        response = Response().send_status(404)
        assert response.status_code == 404
        assert response.body == b"Not Found"

    def test_second_send_raises(self):
        response = Response().send("one")
        with pytest.raises(ResponseAlreadySentFault):
            response.send("two")
        with pytest.raises(ResponseAlreadySentFault):
            response.set_header("x", "y")


# ============================================================================
# Dispatch
# ============================================================================

class TestDispatch:

    def test_error_handler_arity(self):
        assert is_error_handler(lambda err, req, res, next: None)
        assert not is_error_handler(lambda req, res, next: None)

        def flagged(*args):
            pass

        flagged.__error_handler__ = True
        assert is_error_handler(flagged)

    @pytest.mark.asyncio
    async def test_layers_run_in_order(self):
        order = []
        app = Application()

        def one(request, response, next):
            order.append("one")
            next()

        def two(request, response, next):
            order.append("two")
            response.send("done")

        app.use(one)
        app.route("GET", "/x", two)
        response = await dispatch(app, make_request("GET", "/x"))
        assert order == ["one", "two"]
        assert response.body == b"done"

    @pytest.mark.asyncio
    async def test_method_and_path_filter(self):
        app = Application()
        app.route("POST", "/x", lambda req, res, next: res.send("post"))
        app.route("GET", "/x/{id}", lambda req, res, next: res.send(req.params["id"]))

        response = await dispatch(app, make_request("GET", "/x/42"))
        assert response.body == b"42"

    @pytest.mark.asyncio
    async def test_all_matches_any_method(self):
        app = Application()
        app.route("ALL", "/any", lambda req, res, next: res.send(req.method))
        response = await dispatch(app, make_request("DELETE", "/any"))
        assert response.body == b"DELETE"

    @pytest.mark.asyncio
    async def test_sync_raise_reaches_error_handler(self):
        app = Application()
        seen = []

        def boom(request, response, next):
            raise ValueError("sync boom")

        def skipped(request, response, next):
            seen.append("skipped")

        def on_error(err, request, response, next):
            seen.append(err)
            response.status(500).send("handled")

        app.route("GET", "/x", boom, skipped)
        app.use(on_error)
        response = await dispatch(app, make_request("GET", "/x"))
        assert response.status_code == 500
        assert len(seen) == 1 and isinstance(seen[0], ValueError)

    @pytest.mark.asyncio
    async def test_error_handler_can_pass_on(self):
        app = Application()
        app.route("GET", "/x", lambda req, res, next: next(KeyError("k")))
        app.use(lambda err, req, res, next: next(err))
        app.use(lambda err, req, res, next: res.status(418).send("teapot"))
        response = await dispatch(app, make_request("GET", "/x"))
        assert response.status_code == 418

    @pytest.mark.asyncio
    async def test_unguarded_async_failure_is_only_logged(self, caplog):
        app = Application()

        async def broken(request, response, next):
            raise RuntimeError("lost")

        app.route("GET", "/x", broken)
        app.use(lambda err, req, res, next: res.status(500).send("handled"))

        request, response = make_request("GET", "/x"), Response()
        with caplog.at_level(logging.ERROR, logger="switchyard.http"):
            app.handle(request, response)
            await settle()

        assert not response.headers_sent
        assert any("Unobserved" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_not_found(self):
        response = await dispatch(Application(), make_request("GET", "/nowhere"))
        assert response.status_code == 404
        assert response.body == b"Cannot GET /nowhere"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_default_error_stage(self, caplog):
        app = Application()
        app.route("GET", "/x", lambda req, res, next: next(ValueError("hidden")))
        with caplog.at_level(logging.ERROR, logger="switchyard.http"):
            response = await dispatch(app, make_request("GET", "/x"))
        assert response.status_code == 500
        assert response.body == b"Internal Server Error"

    @pytest.mark.asyncio
    async def test_default_error_stage_logs_at_fault_severity(self, caplog):
        app = Application()
        app.route("GET", "/x", lambda req, res, next: next(ResponseAlreadySentFault()))
        app.route("GET", "/y", lambda req, res, next: next(ValueError("plain")))
        with caplog.at_level(logging.DEBUG, logger="switchyard.http"):
            await dispatch(app, make_request("GET", "/x"))
            await dispatch(app, make_request("GET", "/y"))
        levels = [r.levelno for r in caplog.records if r.getMessage().startswith("Unhandled error")]
        assert levels == [logging.WARNING, logging.ERROR]

    @pytest.mark.asyncio
    async def test_default_error_stage_debug(self):
        app = Application(settings=SwitchyardSettings(debug=True))
        app.route("GET", "/x", lambda req, res, next: next(ValueError("shown")))
        response = await dispatch(app, make_request("GET", "/x"))
        assert b"shown" in response.body


# ============================================================================
# ASGI
# ============================================================================

class TestASGI:

    @pytest.mark.asyncio
    async def test_http_round_trip(self):
        app = Application()
        app.route("POST", "/echo", lambda req, res, next: res.send(req.body))

        send = ResponseCapture()
        await app(make_scope("POST", "/echo"), make_receive(chunks=[b"ab", b"cd"]), send)
        assert send.status == 200
        assert send.body == b"abcd"
        assert send.headers["content-length"] == "4"

    @pytest.mark.asyncio
    async def test_request_scope_container(self):
        container = Container()
        seen = []
        app = Application(container)

        def capture(request, response, next):
            seen.append(request.container)
            response.end()

        app.route("GET", "/", capture)
        async with client_for(app) as client:
            await client.get("/")
            await client.get("/")

        assert seen[0].parent is container
        assert seen[0] is not seen[1]

    @pytest.mark.asyncio
    async def test_lifespan(self):
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent = []

        async def receive():
            return next(messages)

        async def send(message):
            sent.append(message["type"])

        await Application()({"type": "lifespan"}, receive, send)
        assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]

    @pytest.mark.asyncio
    async def test_websocket_rejected(self):
        sent = []

        async def send(message):
            sent.append(message)

        async def receive():
            return {"type": "websocket.connect"}

        await Application()({"type": "websocket"}, receive, send)
        assert sent == [{"type": "websocket.close", "code": 1003}]

    @pytest.mark.asyncio
    async def test_pending_response_waits(self):
        app = Application()
        app.route("GET", "/slow", lambda req, res, next: None)

        request, response = make_request("GET", "/slow"), Response()
        app.handle(request, response)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(response.wait(), 0.05)
