"""
工具函数模块
包含整合各项分析的消息分析器
"""

from .helpers import MessageAnalyzer

__all__ = [
    'MessageAnalyzer'
]
