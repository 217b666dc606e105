"""
Vision 模块 - 图片获取

包含：
- CameraDevice: 摄像头设备（硬件层）
- ImageInputController: 拍照 / 上传状态机（业务层）
- data_url: 自描述图片编码

分层架构：
┌─────────────────────────────────────┐
│     Web Layer (Flask Routes)        │  ← HTTP 请求处理
├─────────────────────────────────────┤
│     ImageInputController (业务层)   │  ← 状态机
│     - mount() / retake()            │
│     - capture() / select_file()     │
├─────────────────────────────────────┤
│     CameraDevice (硬件层)           │  ← 只管理摄像头硬件
│     - open() / release()            │
│     - read_frame()                  │
└─────────────────────────────────────┘
"""

from .camera_device import CameraDevice

from .image_input import (
    ImageInputController,
    ImageInputConfig,
    ImageInputError,
    InputState,
    CAMERA_ERROR_MESSAGE
)

from .data_url import (
    encode_data_url,
    decode_data_url,
    split_data_url,
    strip_prefix,
    make_prefix
)

__all__ = [
    # 硬件层
    'CameraDevice',

    # 业务层
    'ImageInputController',
    'ImageInputConfig',
    'ImageInputError',
    'InputState',
    'CAMERA_ERROR_MESSAGE',

    # 编码
    'encode_data_url',
    'decode_data_url',
    'split_data_url',
    'strip_prefix',
    'make_prefix',
]
