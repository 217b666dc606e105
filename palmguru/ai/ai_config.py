"""
AI 服务配置类
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class AIConfig:
    """AI 服务配置对象

    统一管理所有 AI 功能的配置
    """
    # Gemini API 配置
    api_key: str  # Gemini API Key，只从环境变量读取
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"  # API 基础 URL

    # Vision 配置
    vision_model: str = "gemini-2.5-flash-image"  # 支持图片输入的模型
    max_output_tokens: int = 1024  # 输出长度上限

    # 超时配置（None 表示不限制）
    timeout: Optional[float] = None

    # 日志配置
    log_dir: str = "logs"
