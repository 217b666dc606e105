"""
图片获取控制器（业务层）

职责：
1. 摄像头生命周期：mount() / retake() / unmount()
2. 拍照：capture() - 当前帧转为 JPEG data URL
3. 上传：select_file() - 读取文件为 data URL
4. 把得到的图片通过回调交给上层

状态机：
    idle / camera_active / camera_error --select_file--> image_captured
    camera_active --capture--> image_captured
    image_captured --retake--> camera_active | camera_error

不负责：
- AI 分析
- 结果展示
"""
import threading
from dataclasses import dataclass
from typing import Callable, Optional, BinaryIO, Dict, Any
from io import BytesIO

import cv2
from PIL import Image, UnidentifiedImageError

from palmguru.common import Logger
from palmguru.vision.camera_device import CameraDevice
from palmguru.vision.data_url import encode_data_url

CAMERA_ERROR_MESSAGE = (
    "Could not access camera. Please ensure camera permissions are granted. "
    "You can still upload an image."
)


class InputState:
    """图片获取状态"""
    IDLE = "idle"
    CAMERA_ACTIVE = "camera_active"
    IMAGE_CAPTURED = "image_captured"
    CAMERA_ERROR = "camera_error"


class ImageInputError(Exception):
    """拍照或上传失败（非致命）"""


@dataclass
class ImageInputConfig:
    """ImageInputController 配置对象"""
    jpeg_quality: int = 90  # 拍照 JPEG 质量
    log_dir: str = "logs"


class ImageInputController:
    """图片获取控制器

    设计原则：
    - 摄像头由本控制器独占，任何改变摄像头状态的操作都先释放再获取
    - 上传后写入者获胜：新的选择（或拍照）会让之前未完成的读取失效
    - 摄像头不可用不是致命错误，上传始终可用
    """

    def __init__(self,
                 camera: CameraDevice,
                 config: ImageInputConfig,
                 on_image_captured: Optional[Callable[[str], None]] = None):
        """
        Args:
            camera: 摄像头设备
            config: 配置对象
            on_image_captured: 图片就绪回调，参数为 data URL
        """
        self.camera = camera
        self._config = config
        self.on_image_captured = on_image_captured
        self.logger = Logger(config.log_dir)

        self._state = InputState.IDLE
        self._error: Optional[str] = None
        self._image: Optional[str] = None
        self._seq = 0  # 每次选择/拍照/重拍递增，用于丢弃过期的读取

        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def image(self) -> Optional[str]:
        return self._image

    # ==================== 摄像头生命周期 ====================

    def mount(self) -> str:
        """启动时尝试打开摄像头

        Returns:
            进入后的状态
        """
        with self._lock:
            return self._start_camera()

    def retake(self) -> str:
        """清除已拍图片并重新打开摄像头

        摄像头已经在预览中时不做任何事。

        Returns:
            进入后的状态
        """
        with self._lock:
            if self._state == InputState.CAMERA_ACTIVE:
                return self._state
            self._seq += 1
            return self._start_camera()

    def unmount(self):
        """卸载：无论当前状态，释放摄像头"""
        with self._lock:
            self._seq += 1
            self.camera.release()
            if self._state == InputState.CAMERA_ACTIVE:
                self._state = InputState.IDLE
        self.logger.log("input", "info", "图片获取控制器已卸载")

    def _start_camera(self) -> str:
        """打开摄像头（调用方需持有锁）"""
        self._error = None
        self._image = None

        if self.camera.open():
            self._state = InputState.CAMERA_ACTIVE
        else:
            self._state = InputState.CAMERA_ERROR
            self._error = CAMERA_ERROR_MESSAGE
            self.logger.log("input", "warning", "摄像头不可用，降级为仅上传模式")

        return self._state

    # ==================== 拍照 ====================

    def capture(self) -> str:
        """拍照：当前帧编码为 JPEG data URL，然后释放摄像头

        Returns:
            data URL

        Raises:
            ImageInputError: 摄像头未激活或读取失败
        """
        with self._lock:
            if self._state != InputState.CAMERA_ACTIVE:
                raise ImageInputError("Camera is not active.")

            frame = self.camera.read_frame()
            if frame is None:
                raise ImageInputError("Could not read a frame from the camera.")

            jpeg = self._encode_jpeg(frame)
            if jpeg is None:
                raise ImageInputError("Could not encode the captured frame.")

            data_url = encode_data_url(jpeg, "image/jpeg")
            self._seq += 1
            self._image = data_url
            self._state = InputState.IMAGE_CAPTURED
            self.camera.release()

        self.logger.log("input", "info", f"拍照成功: {len(data_url)} 字符")
        self._emit(data_url)
        return data_url

    def _encode_jpeg(self, frame) -> Optional[bytes]:
        ret, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self._config.jpeg_quality])
        if not ret:
            return None
        return buffer.tobytes()

    # ==================== 上传 ====================

    def select_file(self, stream: BinaryIO, declared_mime: Optional[str] = None) -> Optional[str]:
        """读取上传的图片文件

        Args:
            stream: 文件对象
            declared_mime: 浏览器声明的 MIME 类型

        Returns:
            data URL；如果读取期间被更新的选择取代，返回 None

        Raises:
            ImageInputError: 文件为空或不是图片
        """
        with self._lock:
            self._seq += 1
            seq = self._seq

        data = stream.read()
        if not data:
            raise ImageInputError("Selected file is empty.")

        mime = self._detect_mime(data, declared_mime)
        data_url = encode_data_url(data, mime)

        # 文件通过校验后才释放摄像头，拒绝的文件不改变当前状态
        with self._lock:
            if seq != self._seq:
                self.logger.log("input", "info", "上传读取已被新的操作取代，丢弃结果")
                return None
            self._error = None
            self.camera.release()
            self._image = data_url
            self._state = InputState.IMAGE_CAPTURED

        self.logger.log("input", "info", f"上传成功: {mime}, {len(data)} 字节")
        self._emit(data_url)
        return data_url

    def _detect_mime(self, data: bytes, declared_mime: Optional[str]) -> str:
        """识别图片 MIME 类型，优先使用 Pillow 的识别结果"""
        try:
            with Image.open(BytesIO(data)) as img:
                mime = Image.MIME.get(img.format or "")
                if mime:
                    return mime
        except UnidentifiedImageError:
            pass

        if declared_mime and declared_mime.startswith("image/"):
            return declared_mime

        raise ImageInputError("Selected file is not an image.")

    # ==================== 预览 ====================

    def read_preview_jpeg(self) -> Optional[bytes]:
        """读取预览帧（JPEG），摄像头未激活时返回 None"""
        if self._state != InputState.CAMERA_ACTIVE:
            return None

        frame = self.camera.read_frame()
        if frame is None:
            return None
        return self._encode_jpeg(frame)

    # ==================== 状态查询 ====================

    def get_status(self) -> Dict[str, Any]:
        """获取状态

        Returns:
            状态字典
        """
        return {
            "state": self._state,
            "error": self._error,
            "has_image": self._image is not None
        }

    def _emit(self, data_url: str):
        if self.on_image_captured is not None:
            self.on_image_captured(data_url)
