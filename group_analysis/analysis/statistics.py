"""
统计分析模块
根据消息列表计算用户维度与群组维度的统计数据
"""

import logging
from typing import Dict, Iterable, List

from ..models.data_models import (
    AggregateResult,
    Message,
    SegmentType,
    UserStats,
)

logger = logging.getLogger(__name__)

# 夜间时段 [0, 6)
NIGHT_HOURS = range(0, 6)


def find_most_active_period(hour_totals: Dict[int, int]) -> str:
    """
    查找最活跃时段

    按小时升序扫描，只有严格更大时才更新，并列时取最早的小时
    """
    max_hour = 0
    max_count = 0
    for hour in sorted(hour_totals):
        count = hour_totals[hour]
        if count > max_count:
            max_count = count
            max_hour = hour
    return f"{max_hour}:00-{max_hour + 1}:00"


class StatisticsAggregator:
    """
    统计聚合器
    纯函数式地把一组消息转换为 AggregateResult，不修改输入，也没有其他副作用
    """

    def aggregate(self, messages: Iterable[Message]) -> AggregateResult:
        user_stats: Dict[str, UserStats] = {}
        total_messages = 0
        total_chars = 0
        total_emoji_count = 0
        message_lines: List[str] = []

        for msg in messages:
            user_id = str(msg.sender_id)
            if not user_id:
                continue
            total_messages += 1

            stat = user_stats.get(user_id)
            if stat is None:
                stat = UserStats(user_id=user_id, nickname=msg.sender_name)
                user_stats[user_id] = stat

            stat.message_count += 1
            stat.last_active = max(stat.last_active, msg.timestamp)

            hour = msg.get_datetime().hour
            stat.active_hours[hour] = stat.active_hours.get(hour, 0) + 1
            if hour in NIGHT_HOURS:
                stat.night_messages += 1

            pure_text = msg.plain_text()
            for seg in msg.segments:
                if seg.type == SegmentType.REPLY:
                    stat.reply_count += 1
                elif seg.type == SegmentType.AT:
                    stat.at_count += 1
                elif seg.is_emoji():
                    kind = seg.type.value
                    stat.emoji_stats[kind] = stat.emoji_stats.get(kind, 0) + 1
                    total_emoji_count += 1

            chars = len(pure_text) or len(msg.text_content)
            stat.char_count += chars
            total_chars += chars

            line_text = (pure_text if msg.segments else msg.text_content).strip()
            if line_text:
                message_lines.append(f"{msg.sender_name}({user_id}): {line_text}")

        # 所有消息处理完后统一重算比率
        for stat in user_stats.values():
            self._finalize_ratios(stat, total_emoji_count)

        hour_totals = {hour: 0 for hour in range(24)}
        for stat in user_stats.values():
            for hour, count in stat.active_hours.items():
                hour_totals[hour] = hour_totals.get(hour, 0) + count

        # sorted 是稳定排序，并列时保持首次出现的顺序
        ranked_users = sorted(user_stats.values(), key=lambda s: s.message_count, reverse=True)

        logger.debug(
            f"统计完成: 消息 {total_messages} 条, 参与者 {len(user_stats)} 人, "
            f"字数 {total_chars}, 表情 {total_emoji_count}"
        )

        return AggregateResult(
            total_messages=total_messages,
            total_chars=total_chars,
            participant_count=len(user_stats),
            total_emoji_count=total_emoji_count,
            most_active_period=find_most_active_period(hour_totals),
            hour_totals=hour_totals,
            ranked_users=tuple(ranked_users),
            message_lines=tuple(message_lines),
        )

    @staticmethod
    def _finalize_ratios(stat: UserStats, group_emoji_total: int):
        count = stat.message_count
        stat.avg_chars = round(stat.char_count / count, 1)
        stat.night_ratio = round(stat.night_messages / count, 2)
        stat.reply_ratio = round(stat.reply_count / count, 2)
        # 表情比例使用全群表情总数
        stat.emoji_ratio = round(group_emoji_total / count, 2)


def aggregate(messages: Iterable[Message]) -> AggregateResult:
    return StatisticsAggregator().aggregate(messages)
