"""
群聊日常分析
统计、最近消息缓存与 LLM 结构化提取
"""

from .main import GroupDailyAnalysis, GroupNotEnabledError, NotEnoughMessagesError
from .core.config import ConfigError, ConfigManager
from .models.data_models import AnalysisReport, Message, MessageSegment, SegmentType

__all__ = [
    'GroupDailyAnalysis',
    'GroupNotEnabledError',
    'NotEnoughMessagesError',
    'ConfigError',
    'ConfigManager',
    'AnalysisReport',
    'Message',
    'MessageSegment',
    'SegmentType',
]
