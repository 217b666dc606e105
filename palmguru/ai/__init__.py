"""
AI 模块 - 统一的 AI 功能入口

架构：
┌─────────────────────────────────────┐
│          AIService (统一入口)        │
├─────────────────────────────────────┤
│  palm() → PalmAnalyzer              │  ← 手相分析
├─────────────────────────────────────┤
│  AIConfig (配置层)                   │  ← API Key, 模型配置
└─────────────────────────────────────┘

使用示例：
```python
from palmguru.ai import create_ai_service, AIConfig

config = AIConfig(api_key=os.getenv("GEMINI_API_KEY", ""))
ai = create_ai_service(config)

analysis = ai.palm().analyze("data:image/jpeg;base64,...")
print(analysis)  # markdown 文本
```
"""

from .ai_config import AIConfig
from .ai_service import AIService, create_ai_service, reset_ai_service
from .palm_analyzer import (
    PalmAnalyzer,
    AnalysisError,
    FALLBACK_ANALYSIS,
    INVALID_RESPONSE_MESSAGE,
    PALM_PROMPT
)

__all__ = [
    # 配置
    'AIConfig',

    # 服务
    'AIService',
    'create_ai_service',
    'reset_ai_service',

    # 分析器
    'PalmAnalyzer',
    'AnalysisError',
    'FALLBACK_ANALYSIS',
    'INVALID_RESPONSE_MESSAGE',
    'PALM_PROMPT',
]
