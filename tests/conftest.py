import threading
import time
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from palmguru.ai.palm_analyzer import AnalysisError


class FakeCamera:
    """替代 CameraDevice，记录打开和释放次数"""

    def __init__(self, available=True, frame=None):
        self.available = available
        self.frame = frame if frame is not None else np.full((48, 64, 3), 128, dtype=np.uint8)
        self.opened = False
        self.open_calls = 0
        self.release_count = 0

    @property
    def is_open(self):
        return self.opened

    def open(self):
        self.release()
        self.open_calls += 1
        self.opened = self.available
        return self.available

    def read_frame(self):
        return self.frame if self.opened else None

    def release(self):
        if not self.opened:
            return False
        self.opened = False
        self.release_count += 1
        return True


class FakeAnalyzer:
    """替代 PalmAnalyzer；block=True 时等待 release 事件"""

    def __init__(self, result="# Reading\n- a\n- b", error=None, block=False):
        self.result = result
        self.error = error
        self.block = block
        self.calls = []
        self.started = threading.Event()
        self.release = threading.Event()

    def analyze(self, image):
        self.calls.append(image)
        self.started.set()
        if self.block:
            self.release.wait(timeout=5)
        if self.error is not None:
            raise AnalysisError(self.error)
        return self.result


class ManualTimer:
    """替代 threading.Timer，测试中手动触发"""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False

    def start(self):
        self.started = True

    def fire(self):
        self.function(*self.args, **self.kwargs)


def make_png(color=(200, 40, 40), size=(8, 8)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def log_dir(tmp_path):
    return str(tmp_path / "logs")


@pytest.fixture
def timers():
    created = []

    def factory(interval, function, args=None, kwargs=None):
        timer = ManualTimer(interval, function, args, kwargs)
        created.append(timer)
        return timer

    factory.created = created
    return factory
