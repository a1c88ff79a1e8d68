from dataclasses import dataclass, field

from tonegend.ngfif import EventHandler, RequestDispatcher, ToneContext


@dataclass
class FakeRequest:
    properties: dict = field(default_factory=dict)


def make_dispatcher():
    context = ToneContext()
    dispatcher = RequestDispatcher(context)
    context.dispatcher = dispatcher
    return context, dispatcher


def test_register_stores_handler():
    _, dispatcher = make_dispatcher()

    def start(request, ctx):
        return True

    dispatcher.register("dtmf", start, None)
    assert dispatcher.handlers["dtmf"] == EventHandler("dtmf", start, None)


def test_can_handle_registered_type():
    _, dispatcher = make_dispatcher()
    dispatcher.register("dtmf", lambda r, c: True, None)
    assert dispatcher.can_handle(FakeRequest({"tonegen.type": "dtmf"})) is True
    assert dispatcher.can_handle(FakeRequest({"tonegen.type": "indicator"})) is False


def test_can_handle_without_type():
    _, dispatcher = make_dispatcher()
    dispatcher.register("dtmf", lambda r, c: True, None)
    assert dispatcher.can_handle(FakeRequest()) is False
    assert dispatcher.can_handle(FakeRequest({"tonegen.type": 5})) is False


def test_handle_start_passes_request_and_context():
    context, dispatcher = make_dispatcher()
    seen = []

    def start(request, ctx):
        seen.append((request, ctx))
        return True

    dispatcher.register("indicator", start, None)
    request = FakeRequest({"tonegen.type": "indicator"})
    assert dispatcher.handle_start(request) is True
    assert seen == [(request, context)]


def test_handle_start_unknown_type():
    _, dispatcher = make_dispatcher()
    assert dispatcher.handle_start(FakeRequest({"tonegen.type": "dtmf"})) is False


def test_handle_start_returns_handler_result():
    _, dispatcher = make_dispatcher()
    dispatcher.register("dtmf", lambda r, c: False, None)
    assert dispatcher.handle_start(FakeRequest({"tonegen.type": "dtmf"})) is False


def test_handle_stop_calls_stop():
    _, dispatcher = make_dispatcher()
    stopped = []
    dispatcher.register("dtmf", lambda r, c: True, lambda r, c: stopped.append(r) or True)
    request = FakeRequest({"tonegen.type": "dtmf"})
    assert dispatcher.handle_stop(request) is True
    assert stopped == [request]


def test_handle_stop_without_stop_method():
    _, dispatcher = make_dispatcher()
    dispatcher.register("dtmf", lambda r, c: True, None)
    assert dispatcher.handle_stop(FakeRequest({"tonegen.type": "dtmf"})) is False


def test_handle_stop_unknown_type():
    _, dispatcher = make_dispatcher()
    assert dispatcher.handle_stop(FakeRequest({"tonegen.type": "x"})) is False


def test_register_replaces_previous():
    _, dispatcher = make_dispatcher()
    dispatcher.register("dtmf", lambda r, c: False, None)
    dispatcher.register("dtmf", lambda r, c: True, None)
    assert len(dispatcher.handlers) == 1
    assert dispatcher.handle_start(FakeRequest({"tonegen.type": "dtmf"})) is True