"""
手相解读控制器（应用层）

职责：
1. 持有 ReadingState（图片、结果、loading、错误、复制提示）
2. 接收 ImageInputController 的图片
3. 调用 PalmAnalyzer 并记录结果或错误
4. 重新开始、复制结果

过期响应处理：
    每次换图片或重新开始都会递增 session，
    分析完成时 session 已变化则丢弃结果，不修改任何状态。
"""
import threading
from dataclasses import replace
from typing import Callable, Optional, Dict, Any, Tuple

from palmguru.common import Logger
from palmguru.ai.palm_analyzer import PalmAnalyzer, AnalysisError
from palmguru.render.markdown_renderer import render_markdown, to_html
from palmguru.vision.image_input import ImageInputController
from .state import ReadingState

NO_IMAGE_MESSAGE = "Please capture or upload a palm image first."
ANALYSIS_FAILED_PREFIX = "Failed to analyze palm: "
COPY_SUCCESS_MESSAGE = "Copied to clipboard!"
COPY_FAILURE_MESSAGE = "Failed to copy!"


class ReadingController:
    """手相解读控制器

    设计原则：
    - 状态只通过命名的转换方法修改，全部在锁内完成
    - 不阻止重复点击：同时只有一个分析请求是界面层的约定
    - 所有错误都不是致命的，结束后界面总能继续操作
    """

    def __init__(self,
                 image_input: ImageInputController,
                 analyzer: PalmAnalyzer,
                 copy_feedback_seconds: float = 3.0,
                 log_dir: str = "logs",
                 timer_factory: Callable[..., threading.Timer] = threading.Timer):
        """
        Args:
            image_input: 图片获取控制器
            analyzer: 手相分析器
            copy_feedback_seconds: 复制提示自动消失的时间（秒）
            log_dir: 日志目录
            timer_factory: 定时器工厂，签名同 threading.Timer
        """
        self.image_input = image_input
        self.analyzer = analyzer
        self.copy_feedback_seconds = copy_feedback_seconds
        self.logger = Logger(log_dir)
        self._timer_factory = timer_factory

        self._state = ReadingState()
        self._session = 0
        self._copy_token = 0
        self._lock = threading.Lock()

        self.image_input.on_image_captured = self.on_image_captured

    # ==================== 状态转换 ====================

    def on_image_captured(self, data_url: str):
        """新图片就绪：替换图片并清空结果、错误、复制提示"""
        with self._lock:
            self._session += 1
            self._copy_token += 1
            self._state = ReadingState(captured_image=data_url)

        self.logger.log("reading", "info", f"收到新图片: {len(data_url)} 字符")

    def analyze(self) -> bool:
        """同步分析当前图片

        Returns:
            是否得到了结果（校验失败、分析失败、结果过期都返回 False）
        """
        begin = self._begin_analysis()
        if begin is None:
            return False
        return self._run_analysis(*begin)

    def start_analysis(self) -> bool:
        """在后台线程分析当前图片

        loading 在返回前已经置为 True。

        Returns:
            是否启动了分析（没有图片时返回 False）
        """
        begin = self._begin_analysis()
        if begin is None:
            return False

        thread = threading.Thread(
            target=self._run_analysis,
            args=begin,
            name="PalmAnalysis",
            daemon=True
        )
        thread.start()
        return True

    def _begin_analysis(self) -> Optional[Tuple[int, str]]:
        with self._lock:
            if self._state.captured_image is None:
                self._state.error = NO_IMAGE_MESSAGE
                self.logger.log("reading", "warning", "没有图片，跳过分析")
                return None

            self._state.loading = True
            self._state.error = None
            self._state.copy_message = None
            self._copy_token += 1
            return self._session, self._state.captured_image

    def _run_analysis(self, session: int, image: str) -> bool:
        result: Optional[str] = None
        error: Optional[str] = None

        try:
            result = self.analyzer.analyze(image)
        except AnalysisError as e:
            error = ANALYSIS_FAILED_PREFIX + e.message
            self.logger.log("reading", "error", f"分析失败: {e.message}")
        finally:
            with self._lock:
                current = session == self._session
                if current:
                    self._state.loading = False
                    self._state.analysis_result = result
                    self._state.error = error

        if not current:
            self.logger.log("reading", "info", "分析结果已过期，丢弃")
            return False
        return result is not None

    def start_over(self):
        """回到初始状态并重新进入图片获取"""
        with self._lock:
            self._session += 1
            self._copy_token += 1
            self._state = ReadingState()

        self.logger.log("reading", "info", "重新开始")
        self.image_input.retake()

    def copy_result(self, write_text: Callable[[str], None]) -> bool:
        """复制分析结果

        Args:
            write_text: 剪贴板写入函数，失败时抛出异常

        Returns:
            是否复制成功；没有结果时返回 False 且不显示提示
        """
        with self._lock:
            text = self._state.analysis_result

        if not text:
            return False

        try:
            write_text(text)
            success = True
        except Exception as e:
            self.logger.log("reading", "error", f"复制失败: {e}")
            success = False

        with self._lock:
            self._copy_token += 1
            token = self._copy_token
            self._state.copy_message = COPY_SUCCESS_MESSAGE if success else COPY_FAILURE_MESSAGE

        timer = self._timer_factory(self.copy_feedback_seconds, self._clear_copy_message, args=(token,))
        timer.daemon = True
        timer.start()
        return success

    def _clear_copy_message(self, token: int):
        """只清除由同一次复制设置的提示"""
        with self._lock:
            if token == self._copy_token:
                self._state.copy_message = None

    # ==================== 状态查询 ====================

    def snapshot(self) -> ReadingState:
        """获取状态副本"""
        with self._lock:
            return replace(self._state)

    def result_html(self) -> str:
        """把分析结果渲染为 HTML"""
        state = self.snapshot()
        return to_html(render_markdown(state.analysis_result))

    def get_status(self) -> Dict[str, Any]:
        """获取状态

        Returns:
            状态字典（可直接序列化为 JSON）；image_version 在每次换图片或重新开始时变化
        """
        with self._lock:
            state = replace(self._state)
            version = self._session
        status = state.to_dict()
        status["image_version"] = version
        status["result_html"] = to_html(render_markdown(state.analysis_result))
        return status
