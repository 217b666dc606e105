"""
摄像头设备（硬件层）

只负责打开、读帧、释放，不包含任何业务状态
"""
import threading
from typing import Optional

import cv2

from palmguru.common import CameraConfig, Logger


class CameraDevice:
    """摄像头设备

    职责：
    1. 硬件管理（打开、释放摄像头）
    2. 读取当前帧

    设计原则：
    - 释放是幂等的：重复调用 release() 不会重复释放
    - 打开前先释放已有设备
    """

    def __init__(self, config: CameraConfig, log_dir: str = "logs"):
        """
        Args:
            config: 摄像头配置
            log_dir: 日志目录
        """
        self.config = config
        self.logger = Logger(log_dir)
        self.cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self.cap is not None and self.cap.isOpened()

    def open(self) -> bool:
        """打开摄像头

        Returns:
            是否打开成功
        """
        self.release()

        with self._lock:
            try:
                cap = cv2.VideoCapture(self.config.camera_index)

                if not cap.isOpened():
                    cap.release()
                    self.logger.log("camera", "error", f"无法打开摄像头 (索引: {self.config.camera_index})")
                    return False

                # 设置分辨率
                width, height = self.config.resolution
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

                # 设置缓冲区大小
                cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

                self.cap = cap
                self.logger.log("camera", "info", f"摄像头已打开 - 索引: {self.config.camera_index}")
                return True

            except cv2.error as e:
                self.logger.log("camera", "error", f"摄像头初始化失败: {e}")
                return False

    def read_frame(self):
        """读取一帧

        Returns:
            帧（numpy 数组），失败返回 None
        """
        with self._lock:
            if self.cap is None or not self.cap.isOpened():
                return None

            try:
                ret, frame = self.cap.read()
            except cv2.error as e:
                self.logger.log("camera", "error", f"读取帧失败: {e}")
                return None

        if not ret:
            self.logger.log("camera", "error", "无法从摄像头读取图像")
            return None
        return frame

    def release(self) -> bool:
        """释放摄像头

        Returns:
            是否真正释放了设备（未打开时返回 False）
        """
        with self._lock:
            if self.cap is None:
                return False
            self.cap.release()
            self.cap = None

        self.logger.log("camera", "info", "摄像头已释放")
        return True
