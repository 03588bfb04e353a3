"""
数据模型定义
包含所有分析相关的数据结构
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class SegmentType(Enum):
    """消息段类型枚举"""
    TEXT = "text"
    REPLY = "reply"
    AT = "at"
    FACE = "face"
    IMAGE = "image"
    OTHER = "other"


# 计入表情统计的消息段类型
EMOJI_SEGMENT_TYPES = (SegmentType.FACE, SegmentType.IMAGE)


@dataclass(frozen=True)
class MessageSegment:
    """消息段，组成消息链"""
    type: SegmentType
    text: str = ""
    target_id: str = ""
    emoji_id: str = ""

    def is_emoji(self) -> bool:
        return self.type in EMOJI_SEGMENT_TYPES


@dataclass(frozen=True)
class Message:
    """
    统一消息格式

    不可变，所有 ID 使用字符串以避免平台差异
    """
    message_id: str
    sender_id: str
    sender_name: str
    group_id: str
    text_content: str = ""
    segments: Tuple[MessageSegment, ...] = field(default_factory=tuple)
    timestamp: float = 0
    platform: str = "unknown"

    def get_datetime(self) -> datetime:
        """获取消息时间（本地时区）"""
        return datetime.fromtimestamp(self.timestamp)

    def plain_text(self) -> str:
        """拼接所有文本消息段"""
        return "".join(seg.text for seg in self.segments if seg.type == SegmentType.TEXT)


@dataclass
class UserStats:
    """
    单个用户的统计数据

    原始计数器在聚合过程中累加，比率字段只在全部消息处理完之后统一重算
    """
    user_id: str
    nickname: str
    message_count: int = 0
    char_count: int = 0
    reply_count: int = 0
    at_count: int = 0
    night_messages: int = 0
    emoji_stats: Dict[str, int] = field(default_factory=dict)
    active_hours: Dict[int, int] = field(default_factory=lambda: {hour: 0 for hour in range(24)})
    last_active: float = 0
    avg_chars: float = 0.0
    night_ratio: float = 0.0
    reply_ratio: float = 0.0
    emoji_ratio: float = 0.0


@dataclass(frozen=True)
class AggregateResult:
    """
    群聊统计数据结构

    只冻结字段绑定，hour_totals 和 ranked_users 中的 UserStats 仍是可变对象，
    生成后不应再修改
    """
    total_messages: int
    total_chars: int
    participant_count: int
    total_emoji_count: int
    most_active_period: str
    hour_totals: Dict[int, int]
    ranked_users: Tuple[UserStats, ...]
    message_lines: Tuple[str, ...] = ()


@dataclass
class SummaryTopic:
    """话题总结数据结构"""
    topic: str
    contributors: List[str]
    detail: str


@dataclass
class UserTitle:
    """用户称号数据结构"""
    name: str
    user_id: str
    title: str
    mbti: str
    reason: str


@dataclass
class GoldenQuote:
    """群聊金句数据结构"""
    content: str
    sender: str
    reason: str


@dataclass(frozen=True)
class TokenUsage:
    """Token使用统计"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: object) -> "TokenUsage":
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class AnalysisReport:
    """
    群聊分析报告，分析流程的最终产物

    users 与 statistics.ranked_users 共享同一批 UserStats。
    需要独立副本时使用 to_dict
    """
    group_id: str
    analysis_date: str
    statistics: AggregateResult
    users: Tuple[UserStats, ...]
    most_active_user: Optional[UserStats]
    most_active_period: str
    topics: Tuple[SummaryTopic, ...] = ()
    user_titles: Tuple[UserTitle, ...] = ()
    golden_quotes: Tuple[GoldenQuote, ...] = ()
    token_usage: TokenUsage = field(default_factory=TokenUsage)

    def has_content(self) -> bool:
        """检查报告是否包含 LLM 分析内容"""
        return bool(self.topics or self.user_titles or self.golden_quotes)

    def to_dict(self) -> dict:
        """转换为字典，供渲染层使用"""
        return asdict(self)
