"""
AI 服务 - 手相分析的入口

一个进程只持有一个 AIService：
- create_ai_service() 第一次调用时按配置创建
- reset_ai_service() 丢弃当前实例，下次创建时重新读取配置（服务重启、测试）
"""
import threading
from typing import Optional, Dict, Any

from palmguru.common import Logger
from .ai_config import AIConfig
from .palm_analyzer import PalmAnalyzer

PROVIDER = "gemini"


class AIService:
    """持有 Gemini 配置，按需创建 PalmAnalyzer"""

    def __init__(self, config: AIConfig):
        self.config = config
        self.logger = Logger(config.log_dir)
        self._palm_analyzer: Optional[PalmAnalyzer] = None

        if not config.api_key:
            self.logger.log("ai", "warning", "未配置 GEMINI_API_KEY，分析请求会直接失败")
        self.logger.log("ai", "info", f"手相分析使用 {PROVIDER}/{config.vision_model}，"
                                      f"输出上限 {config.max_output_tokens} tokens")

    def palm(self) -> PalmAnalyzer:
        """获取手相分析器（第一次调用时创建）"""
        if self._palm_analyzer is None:
            self._palm_analyzer = PalmAnalyzer(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                model=self.config.vision_model,
                max_output_tokens=self.config.max_output_tokens,
                timeout=self.config.timeout,
                log_dir=self.config.log_dir
            )

        return self._palm_analyzer

    def get_status(self) -> Dict[str, Any]:
        """分析服务的配置概况，不包含 API Key 本身"""
        return {
            "provider": PROVIDER,
            "vision_model": self.config.vision_model,
            "max_output_tokens": self.config.max_output_tokens,
            "timeout": self.config.timeout,
            "api_key_configured": bool(self.config.api_key),
            "analyzer_ready": self._palm_analyzer is not None
        }


# ==================== 工厂函数 ====================

_service_instance: Optional[AIService] = None
_service_lock = threading.Lock()


def create_ai_service(config: AIConfig) -> AIService:
    """获取进程内的 AIService，不存在时用 config 创建

    已有实例时 config 被忽略；需要换配置时先调用 reset_ai_service()。
    """
    global _service_instance
    with _service_lock:
        if _service_instance is None:
            _service_instance = AIService(config)
        return _service_instance


def reset_ai_service():
    """丢弃当前 AIService"""
    global _service_instance
    with _service_lock:
        _service_instance = None
