"""
Tests for the headless embedding surface and the report container.
"""

from report_embed.surface import LOADING_TEXT, HeadlessSurface, ReportContainer


def test_container_starts_with_loading_text():
    container = ReportContainer()

    assert container.lines == [LOADING_TEXT]
    container.show_lines(["first", "second"])
    assert container.text == "first\nsecond"
    container.clear()
    assert container.text == ""


def test_one_live_handle_per_container():
    surface = HeadlessSurface()
    container = ReportContainer()

    first = surface.embed(container, {"id": "rpt-1"})
    second = surface.embed(container, {"id": "rpt-1"})

    assert first.disposed
    assert surface.handle_for(container) is second
    assert surface.resets == [container]


def test_emit_reaches_registered_callbacks_until_off():
    handle = HeadlessSurface().embed(ReportContainer(), {"id": "rpt-1"})
    received = []

    handle.on("rendered", received.append)
    handle.emit("rendered", detail="ok")
    handle.off("rendered")
    handle.emit("rendered")

    assert [event.detail for event in received] == ["ok"]
    assert received[0].name == "rendered"
