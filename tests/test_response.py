"""Tests for waypoint.http.response — OutgoingResponse and make_response."""

from waypoint.http.response import OutgoingResponse, make_response


class TestMakeResponse:
    def test_defaults(self) -> None:
        response = make_response()
        assert response == OutgoingResponse(status_code=200, content=None, headers=())

    def test_options(self) -> None:
        response = make_response(status_code=302, headers={"Location": "/login"})
        assert response.status_code == 302
        assert response.headers == (("Location", "/login"),)


class TestOutgoingResponse:
    def test_chainable_transformations(self) -> None:
        original = OutgoingResponse()
        changed = (
            original.with_status(201)
            .with_content({"ok": True})
            .with_header("X-A", "1")
            .with_headers({"X-B": "2"})
        )
        assert changed.status_code == 201
        assert changed.content == {"ok": True}
        assert changed.headers == (("X-A", "1"), ("X-B", "2"))
        assert original == OutgoingResponse()

    def test_get_header_is_case_insensitive(self) -> None:
        response = OutgoingResponse(headers=(("Allow", "GET"),))
        assert response.get_header("allow") == "GET"
        assert response.get_header("missing", "x") == "x"

    def test_redirect(self) -> None:
        response = make_response(status_code=301, headers={"Location": "/new"})
        assert response.is_redirect
        assert response.location == "/new"

    def test_not_a_redirect(self) -> None:
        assert not make_response(status_code=301).is_redirect
        assert not make_response(headers={"Location": "/x"}).is_redirect
