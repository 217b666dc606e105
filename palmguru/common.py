"""
通用工具类

- Logger: 控制台 + JSON 行日志
- Config: 从 .env / 环境变量加载的全局配置
"""
import os
import json
from pathlib import Path
from datetime import datetime
from typing import Optional
from dotenv import load_dotenv
from dataclasses import dataclass

# 项目根目录
BASE_DIR = Path(__file__).parent.parent

# 加载 .env 文件
load_dotenv(os.path.join(BASE_DIR, '.env'))


class Logger:
    """简单日志工具"""

    def __init__(self, log_dir):
        self.log_dir = Path(log_dir) if log_dir else None

    def log(self, module: str, level: str, message: str, **kwargs):
        """记录日志"""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = {
            "timestamp": timestamp,
            "module": module,
            "level": level,
            "message": message,
            **kwargs
        }

        # 输出到控制台
        print(f"[{timestamp}] [{module}] {level}: {message}")

        # 输出到文件（可选）
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.log_dir / f"{datetime.now().strftime('%Y%m%d')}.log"
            try:
                with open(log_file, "a", encoding="utf-8") as f:
                    f.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
            except OSError as e:
                print(f"写入日志失败: {e}")


@dataclass
class GeminiConfig:
    """Gemini Vision API 配置"""
    api_key: str
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash-image"
    max_output_tokens: int = 1024
    timeout: Optional[float] = None  # None 表示不限制


@dataclass
class CameraConfig:
    """摄像头配置"""
    camera_index: int = 0
    resolution: tuple = (1280, 720)  # 目标分辨率
    quality: int = 90  # JPEG 质量


@dataclass
class WebConfig:
    """Web 服务配置"""
    host: str = "0.0.0.0"
    port: int = 5000
    copy_feedback_seconds: float = 3.0  # 复制提示的显示时长


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    return float(value)


class Config:
    """全局配置类"""

    def __init__(self):
        # Gemini 配置（兼容旧的 API_KEY 变量名）
        self.gemini = GeminiConfig(
            api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", ""),
            base_url=os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
            model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash-image"),
            max_output_tokens=int(os.getenv("MAX_OUTPUT_TOKENS", "1024")),
            timeout=_optional_float(os.getenv("GEMINI_TIMEOUT"))
        )

        # 摄像头配置
        self.camera = CameraConfig(
            camera_index=int(os.getenv("CAMERA_INDEX", "0")),
            resolution=tuple(map(int, os.getenv("RESOLUTION", "1280,720").split(","))),
            quality=int(os.getenv("IMAGE_QUALITY", "90"))
        )

        # Web 配置
        self.web = WebConfig(
            host=os.getenv("WEB_HOST", "0.0.0.0"),
            port=int(os.getenv("WEB_PORT", "5000")),
            copy_feedback_seconds=float(os.getenv("COPY_FEEDBACK_SECONDS", "3"))
        )

        # 项目路径
        self.log_dir = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))
