"""
通用工具函数模块
包含整合统计与 LLM 分析的消息分析器
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..analysis.llm_analyzer import LLMAnalyzer
from ..analysis.statistics import StatisticsAggregator, find_most_active_period
from ..models.data_models import AnalysisReport, Message

logger = logging.getLogger(__name__)


class MessageAnalyzer:
    """消息分析器 - 整合所有分析功能，输出不可变的分析报告"""

    def __init__(self, config_manager, llm_analyzer: Optional[LLMAnalyzer] = None):
        self.config_manager = config_manager
        self.aggregator = StatisticsAggregator()
        self.llm_analyzer = llm_analyzer or LLMAnalyzer(config_manager)

    async def analyze_messages(self, messages: Sequence[Message], group_id: str) -> AnalysisReport:
        """完整的消息分析流程"""
        logger.info(f"开始分析群 {group_id} 的 {len(messages)} 条消息...")

        # 基础统计必须在构建提示词之前完成
        statistics = self.aggregator.aggregate(messages)

        # LLM分析，单项失败时对应结果为空
        extraction = await self.llm_analyzer.analyze_all(statistics)

        users = statistics.ranked_users[:self.config_manager.get_max_users_in_report()]
        most_active_user = users[0] if users else None

        report = AnalysisReport(
            group_id=group_id,
            analysis_date=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            statistics=statistics,
            users=tuple(users),
            most_active_user=most_active_user,
            most_active_period=find_most_active_period(statistics.hour_totals),
            topics=tuple(extraction.topics),
            user_titles=tuple(extraction.user_titles),
            golden_quotes=tuple(extraction.golden_quotes),
            token_usage=extraction.token_usage,
        )

        if not report.has_content():
            logger.warning(f"群 {group_id} 的 LLM 分析全部为空，报告仅包含统计数据")
        logger.info(
            f"群 {group_id} 分析完成: 话题 {len(report.topics)} 个, 称号 {len(report.user_titles)} 个, "
            f"金句 {len(report.golden_quotes)} 条, token {report.token_usage.total_tokens}"
        )
        return report
