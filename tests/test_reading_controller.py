import threading

import httpx

from palmguru.ai import PalmAnalyzer, FALLBACK_ANALYSIS, INVALID_RESPONSE_MESSAGE
from palmguru.reading import (
    ReadingController,
    ReadingPhase,
    NO_IMAGE_MESSAGE,
    COPY_SUCCESS_MESSAGE,
    COPY_FAILURE_MESSAGE
)
from palmguru.vision import ImageInputController, ImageInputConfig, InputState

from conftest import FakeCamera, FakeAnalyzer, wait_for

IMAGE = "data:image/jpeg;base64,/9j/AAAA"


def make_controller(log_dir, analyzer=None, camera=None, timers=None):
    image_input = ImageInputController(camera or FakeCamera(), ImageInputConfig(log_dir=log_dir))
    kwargs = {"timer_factory": timers} if timers is not None else {}
    return ReadingController(image_input, analyzer or FakeAnalyzer(), log_dir=log_dir, **kwargs)


def test_initial_state_is_empty(log_dir):
    state = make_controller(log_dir).snapshot()

    assert state.phase == ReadingPhase.EMPTY
    assert state.loading is False
    assert state.error is None


def test_image_input_is_wired_to_controller(log_dir):
    controller = make_controller(log_dir)
    controller.image_input.mount()

    data_url = controller.image_input.capture()

    assert controller.snapshot().captured_image == data_url


def test_analyze_without_image_is_a_validation_error(log_dir):
    analyzer = FakeAnalyzer()
    controller = make_controller(log_dir, analyzer)

    assert controller.analyze() is False

    state = controller.snapshot()
    assert state.error == NO_IMAGE_MESSAGE
    assert state.loading is False
    assert analyzer.calls == []


def test_start_analysis_without_image_does_not_start(log_dir):
    analyzer = FakeAnalyzer()
    controller = make_controller(log_dir, analyzer)

    assert controller.start_analysis() is False
    assert controller.snapshot().loading is False
    assert analyzer.calls == []


def test_successful_analysis_sets_result(log_dir):
    analyzer = FakeAnalyzer(result="## Heart Line\nStrong.")
    controller = make_controller(log_dir, analyzer)
    controller.on_image_captured(IMAGE)

    assert controller.analyze() is True

    state = controller.snapshot()
    assert analyzer.calls == [IMAGE]
    assert state.analysis_result == "## Heart Line\nStrong."
    assert state.phase == ReadingPhase.RESULT
    assert state.loading is False
    assert state.error is None


def test_empty_backend_text_shows_fallback(log_dir, monkeypatch):
    def post(url, json=None, headers=None, timeout=None):
        return httpx.Response(200, json={"candidates": []}, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx, "post", post)
    analyzer = PalmAnalyzer(api_key="k", base_url="https://example.test", model="m", log_dir=log_dir)
    controller = make_controller(log_dir, analyzer)
    controller.on_image_captured(IMAGE)

    controller.analyze()

    assert controller.snapshot().analysis_result == FALLBACK_ANALYSIS


def test_malformed_backend_response_is_shown_inline(log_dir, monkeypatch):
    def post(url, json=None, headers=None, timeout=None):
        return httpx.Response(200, json={"candidates": ["oops"]}, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx, "post", post)
    analyzer = PalmAnalyzer(api_key="k", base_url="https://example.test", model="m", log_dir=log_dir)
    controller = make_controller(log_dir, analyzer)
    controller.on_image_captured(IMAGE)

    assert controller.analyze() is False

    state = controller.snapshot()
    assert state.error == "Failed to analyze palm: " + INVALID_RESPONSE_MESSAGE
    assert state.analysis_result is None
    assert state.loading is False


def test_failed_analysis_keeps_image(log_dir):
    controller = make_controller(log_dir, FakeAnalyzer(error="quota exceeded"))
    controller.on_image_captured(IMAGE)

    assert controller.analyze() is False

    state = controller.snapshot()
    assert state.error == "Failed to analyze palm: quota exceeded"
    assert state.analysis_result is None
    assert state.captured_image == IMAGE
    assert state.loading is False


def test_retry_after_failure_clears_error(log_dir):
    analyzer = FakeAnalyzer(error="timeout")
    controller = make_controller(log_dir, analyzer)
    controller.on_image_captured(IMAGE)
    controller.analyze()

    analyzer.error = None
    controller.analyze()

    state = controller.snapshot()
    assert state.error is None
    assert state.analysis_result == analyzer.result


def test_loading_is_set_while_call_in_flight(log_dir):
    analyzer = FakeAnalyzer(block=True)
    controller = make_controller(log_dir, analyzer)
    controller.on_image_captured(IMAGE)

    assert controller.start_analysis() is True
    assert controller.snapshot().loading is True

    analyzer.release.set()
    assert wait_for(lambda: not controller.snapshot().loading)
    assert controller.snapshot().analysis_result == analyzer.result


def test_start_over_while_loading_ignores_late_response(log_dir):
    camera = FakeCamera()
    analyzer = FakeAnalyzer(block=True)
    controller = make_controller(log_dir, analyzer, camera)
    controller.image_input.mount()
    controller.image_input.capture()

    worker = threading.Thread(target=controller.analyze)
    worker.start()
    assert analyzer.started.wait(timeout=5)
    assert controller.snapshot().loading is True

    controller.start_over()
    state = controller.snapshot()
    assert state.loading is False
    assert state.captured_image is None

    analyzer.release.set()
    worker.join(timeout=5)

    state = controller.snapshot()
    assert state.phase == ReadingPhase.EMPTY
    assert state.analysis_result is None
    assert state.error is None
    assert state.loading is False


def test_new_image_invalidates_running_analysis(log_dir):
    analyzer = FakeAnalyzer(block=True)
    controller = make_controller(log_dir, analyzer)
    controller.on_image_captured(IMAGE)

    worker = threading.Thread(target=controller.analyze)
    worker.start()
    assert analyzer.started.wait(timeout=5)

    controller.on_image_captured("data:image/png;base64,AAAA")
    analyzer.release.set()
    worker.join(timeout=5)

    state = controller.snapshot()
    assert state.captured_image == "data:image/png;base64,AAAA"
    assert state.analysis_result is None
    assert state.loading is False


def test_new_image_clears_result_and_messages(log_dir, timers):
    controller = make_controller(log_dir, timers=timers)
    controller.on_image_captured(IMAGE)
    controller.analyze()
    controller.copy_result(lambda text: None)

    controller.on_image_captured("data:image/png;base64,AAAA")

    state = controller.snapshot()
    assert state.analysis_result is None
    assert state.copy_message is None
    assert state.error is None


def test_start_over_reenters_image_acquisition(log_dir):
    camera = FakeCamera()
    controller = make_controller(log_dir, camera=camera)
    controller.image_input.mount()
    controller.image_input.capture()
    controller.analyze()

    controller.start_over()

    assert controller.snapshot().phase == ReadingPhase.EMPTY
    assert controller.image_input.state == InputState.CAMERA_ACTIVE
    assert camera.open_calls == 2


def test_copy_success_message_expires(log_dir, timers):
    copied = []
    controller = make_controller(log_dir, timers=timers)
    controller.on_image_captured(IMAGE)
    controller.analyze()

    assert controller.copy_result(copied.append) is True

    assert copied == [controller.snapshot().analysis_result]
    assert controller.snapshot().copy_message == COPY_SUCCESS_MESSAGE
    timer = timers.created[-1]
    assert timer.interval == 3.0
    assert timer.started and timer.daemon

    timer.fire()
    assert controller.snapshot().copy_message is None


def test_copy_failure_sets_transient_message(log_dir, timers):
    def broken(text):
        raise OSError("clipboard unavailable")

    controller = make_controller(log_dir, timers=timers)
    controller.on_image_captured(IMAGE)
    controller.analyze()

    assert controller.copy_result(broken) is False

    state = controller.snapshot()
    assert state.copy_message == COPY_FAILURE_MESSAGE
    assert state.analysis_result is not None
    assert state.error is None


def test_old_timer_does_not_clear_newer_message(log_dir, timers):
    controller = make_controller(log_dir, timers=timers)
    controller.on_image_captured(IMAGE)
    controller.analyze()

    controller.copy_result(lambda text: None)
    controller.copy_result(lambda text: None)
    first, second = timers.created

    first.fire()
    assert controller.snapshot().copy_message == COPY_SUCCESS_MESSAGE
    second.fire()
    assert controller.snapshot().copy_message is None


def test_copy_without_result_does_nothing(log_dir, timers):
    copied = []
    controller = make_controller(log_dir, timers=timers)

    assert controller.copy_result(copied.append) is False
    assert copied == []
    assert timers.created == []
    assert controller.snapshot().copy_message is None


def test_status_includes_rendered_result(log_dir):
    controller = make_controller(log_dir, FakeAnalyzer(result="# Reading\n- a\n- b"))
    controller.on_image_captured(IMAGE)
    controller.analyze()

    status = controller.get_status()

    assert status["phase"] == ReadingPhase.RESULT
    assert status["result_html"] == "<h1>Reading</h1>\n<ul><li>a</li><li>b</li></ul>"
    assert controller.result_html() == status["result_html"]


def test_status_without_result_renders_nothing(log_dir):
    controller = make_controller(log_dir)
    controller.on_image_captured(IMAGE)

    status = controller.get_status()

    assert status["phase"] == ReadingPhase.IMAGE
    assert status["result_html"] == ""


def test_status_reports_image_without_its_data(log_dir):
    controller = make_controller(log_dir)
    empty = controller.get_status()
    controller.on_image_captured(IMAGE)

    status = controller.get_status()

    assert "captured_image" not in status
    assert status["has_image"] is True
    assert empty["has_image"] is False
    assert status["image_version"] != empty["image_version"]
