"""
用户称号分析模块
专门处理用户称号和MBTI类型分析
"""

import logging
from typing import Any, List, Sequence

from ...models.data_models import UserStats, UserTitle
from ..utils.yaml_utils import get_text_field
from .base_analyzer import BaseAnalyzer, fill_template

logger = logging.getLogger(__name__)


def format_user_summary(user: UserStats) -> str:
    """单个用户的摘要行"""
    return (
        f"- {user.nickname} (ID:{user.user_id}): "
        f"发言{user.message_count}条, 平均{user.avg_chars}字, "
        f"表情比例{user.emoji_ratio}, 夜间发言比例{user.night_ratio}, "
        f"回复比例{user.reply_ratio}"
    )


class UserTitleAnalyzer(BaseAnalyzer):
    """
    用户称号分析器
    专门处理用户称号分配和MBTI类型分析
    """

    def get_data_type(self) -> str:
        return "用户称号"

    def get_max_count(self) -> int:
        return self.config_manager.get_max_user_titles()

    def prepare_user_summaries(self, users: Sequence[UserStats]) -> List[str]:
        """按发言数排序取前N名，生成摘要行"""
        ranked = sorted(users, key=lambda u: u.message_count, reverse=True)
        return [format_user_summary(user) for user in ranked[:self.get_max_count()]]

    def build_prompt(self, users: Sequence[UserStats]) -> str:
        user_summaries = self.prepare_user_summaries(users)
        if not user_summaries:
            return ""

        return fill_template(self.config_manager.get_user_title_analysis_prompt(), {
            "users": "\n".join(user_summaries),
        })

    def create_data_objects(self, titles_data: List[Any]) -> List[UserTitle]:
        titles = []
        for title_data in titles_data:
            if len(titles) >= self.get_max_count():
                break
            if not isinstance(title_data, dict):
                logger.warning(f"跳过非字典类型的用户称号数据: {title_data}")
                continue

            name = get_text_field(title_data, "name")
            title = get_text_field(title_data, "title")
            reason = get_text_field(title_data, "reason")
            if not name or not title or not reason:
                logger.warning(f"用户称号数据格式不完整，跳过: {title_data}")
                continue

            titles.append(UserTitle(
                name=name,
                user_id=get_text_field(title_data, "id") or get_text_field(title_data, "userId"),
                title=title,
                mbti=get_text_field(title_data, "mbti"),
                reason=reason,
            ))
        return titles
