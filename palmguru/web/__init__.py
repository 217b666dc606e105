"""
Web 模块 - Flask 界面与 API
"""
