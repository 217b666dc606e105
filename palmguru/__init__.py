"""
PalmGuru

拍摄或上传手掌照片，交给 Gemini 视觉模型分析，并渲染返回的 markdown：
- ai: 手相分析服务
- vision: 摄像头与上传（图片获取）
- render: markdown 渲染
- reading: 应用层编排
- web: Flask 界面
"""
