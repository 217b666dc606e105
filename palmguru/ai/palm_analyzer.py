"""
手相分析器

基于 Gemini generateContent API 的图像分析
"""
from typing import Dict, Any, Optional

import httpx

from palmguru.common import Logger
from palmguru.vision.data_url import split_data_url

FALLBACK_ANALYSIS = "Could not generate a response. Please try again."
INVALID_RESPONSE_MESSAGE = "The analysis service returned an invalid response."

PALM_PROMPT = (
    "Analyze this palm image for palmistry. Identify and describe the Heart Line, "
    "Mind Line, and Fate Line. Based on these lines and other visible features, "
    "describe the person's personality and traits. Provide a general, entertaining "
    "future prediction. Conclude with a clear statement: \"Disclaimer: This analysis "
    "is for entertainment purposes only and should not be taken as professional "
    "advice.\" Ensure the response is detailed and engaging."
)


class AnalysisError(Exception):
    """分析失败，message 可直接展示给用户"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PalmAnalyzer:
    """手相分析器

    职责：
    1. 封装 Gemini API 调用
    2. 去掉 data URL 前缀，只发送 base64 内容和 MIME 类型
    3. 提取 markdown 文本

    设计原则：
    - 单一职责：只负责一次请求、一次响应
    - 无状态：不保存分析历史
    - 不重试：失败直接抛出 AnalysisError
    """

    def __init__(self, api_key: str, base_url: str, model: str,
                 max_output_tokens: int = 1024,
                 timeout: Optional[float] = None,
                 log_dir: str = "logs"):
        """
        Args:
            api_key: Gemini API Key
            base_url: API 基础 URL
            model: 模型名称
            max_output_tokens: 输出长度上限
            timeout: 请求超时（秒），None 表示不限制
            log_dir: 日志目录
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.logger = Logger(log_dir)

    def analyze(self, image: str) -> str:
        """分析手掌图片

        Args:
            image: data URL 形式的图片

        Returns:
            markdown 格式的分析文本；模型返回空内容时返回固定的提示语

        Raises:
            AnalysisError: 网络或 API 调用失败
        """
        if not self.api_key:
            raise AnalysisError("API key is not configured. Set GEMINI_API_KEY in the environment.")

        mime, payload = split_data_url(image)
        self.logger.log("ai", "info", f"开始分析图片: {mime}, {len(payload)} 字符")

        response_json = self._call_api(self._build_request(mime, payload))
        text = self._extract_text(response_json)

        if not text:
            self.logger.log("ai", "warning", "模型返回空内容，使用默认提示")
            return FALLBACK_ANALYSIS

        self.logger.log("ai", "info", f"分析完成: {len(text)} 字符")
        return text

    def _build_request(self, mime: str, payload: str) -> Dict[str, Any]:
        """构建 generateContent 请求体"""
        return {
            "contents": [
                {
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": mime,
                                "data": payload
                            }
                        },
                        {
                            "text": PALM_PROMPT
                        }
                    ]
                }
            ],
            "generationConfig": {
                "maxOutputTokens": self.max_output_tokens
            }
        }

    def _call_api(self, data: Dict[str, Any]) -> Any:
        """调用 Gemini API

        Raises:
            AnalysisError: 传输失败、HTTP 错误或响应不是 JSON
        """
        url = f"{self.base_url}/models/{self.model}:generateContent"

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json"
        }

        try:
            response = httpx.post(url, json=data, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            message = self._error_message(e.response)
            self.logger.log("ai", "error", f"API 返回错误: {e.response.status_code} {message}")
            raise AnalysisError(message) from e

        except httpx.HTTPError as e:
            self.logger.log("ai", "error", f"API 调用失败: {e}")
            raise AnalysisError(str(e) or e.__class__.__name__) from e

        except ValueError as e:
            self.logger.log("ai", "error", f"API 响应不是 JSON: {e}")
            raise AnalysisError(INVALID_RESPONSE_MESSAGE) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """从错误响应中提取可读信息"""
        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
        return f"HTTP {response.status_code}"

    def _extract_text(self, response_json: Any) -> str:
        """拼接第一个候选结果中的所有文本片段

        非字符串的 text 片段会被忽略。

        Raises:
            AnalysisError: 响应结构不符合 generateContent 格式
        """
        if not isinstance(response_json, dict):
            raise self._invalid_response(f"顶层不是对象: {type(response_json).__name__}")

        candidates = response_json.get("candidates") or []
        if not isinstance(candidates, list):
            raise self._invalid_response("candidates 不是列表")
        if not candidates:
            return ""

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise self._invalid_response("candidate 不是对象")

        content = candidate.get("content") or {}
        if not isinstance(content, dict):
            raise self._invalid_response("content 不是对象")

        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise self._invalid_response("parts 不是列表")

        return "".join(
            part["text"] for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )

    def _invalid_response(self, detail: str) -> AnalysisError:
        self.logger.log("ai", "error", f"API 响应格式错误: {detail}")
        return AnalysisError(INVALID_RESPONSE_MESSAGE)
