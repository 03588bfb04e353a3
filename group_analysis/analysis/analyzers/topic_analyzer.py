"""
话题分析模块
专门处理群聊话题分析
"""

import logging
from typing import Any, List, Sequence

from ...models.data_models import SummaryTopic
from ..utils.yaml_utils import get_text_field
from .base_analyzer import BaseAnalyzer, fill_template

logger = logging.getLogger(__name__)

# 每个话题最多保留的参与者数量
MAX_CONTRIBUTORS = 5


class TopicAnalyzer(BaseAnalyzer):
    """
    话题分析器
    专门处理群聊话题的提取和分析
    """

    def get_data_type(self) -> str:
        return "话题"

    def get_max_count(self) -> int:
        return self.config_manager.get_max_topics()

    def build_prompt(self, message_lines: Sequence[str]) -> str:
        """
        构建话题分析提示词

        Args:
            message_lines: 形如 "昵称(ID): 内容" 的消息行

        Returns:
            提示词字符串
        """
        if not message_lines:
            return ""

        prompt = fill_template(self.config_manager.get_topic_analysis_prompt(), {
            "messages": "\n".join(message_lines),
            "maxTopics": self.get_max_count(),
        })
        logger.debug(f"话题分析 prompt 长度: {len(prompt)}")
        return prompt

    def create_data_objects(self, topics_data: List[Any]) -> List[SummaryTopic]:
        """
        创建话题对象列表

        Args:
            topics_data: 原始话题数据列表

        Returns:
            SummaryTopic对象列表
        """
        topics = []
        for topic_data in topics_data:
            if len(topics) >= self.get_max_count():
                break
            if not isinstance(topic_data, dict):
                logger.warning(f"跳过非字典类型的话题数据: {type(topic_data)} - {topic_data}")
                continue

            topic_name = get_text_field(topic_data, "topic")
            detail = get_text_field(topic_data, "detail")
            if not topic_name or not detail:
                logger.warning(f"话题数据格式不完整，跳过: {topic_data}")
                continue

            contributors = topic_data.get("contributors")
            if isinstance(contributors, list):
                contributors = [str(c).strip() for c in contributors if c is not None and str(c).strip()]
            else:
                contributors = []

            topics.append(SummaryTopic(
                topic=topic_name,
                contributors=contributors[:MAX_CONTRIBUTORS] or ["群友"],
                detail=detail,
            ))
        return topics
