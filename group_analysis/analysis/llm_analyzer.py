"""
LLM分析器模块
负责协调各个分析器并发进行话题分析、用户称号分析和金句分析
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..models.data_models import (
    AggregateResult,
    GoldenQuote,
    SummaryTopic,
    TokenUsage,
    UserStats,
    UserTitle,
)
from .analyzers.golden_quote_analyzer import GoldenQuoteAnalyzer
from .analyzers.topic_analyzer import TopicAnalyzer
from .analyzers.user_title_analyzer import UserTitleAnalyzer
from .utils.llm_utils import LLMClient, ModelResolver

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResults:
    """三类提取结果的汇总"""
    topics: List[SummaryTopic] = field(default_factory=list)
    user_titles: List[UserTitle] = field(default_factory=list)
    golden_quotes: List[GoldenQuote] = field(default_factory=list)
    token_usage: TokenUsage = field(default_factory=TokenUsage)


class LLMAnalyzer:
    """
    LLM分析器
    作为统一入口，协调各个专门的分析器。三个分析器共享同一个模型选择器，
    每个分析任务的异常都在各自的调用处捕获并降级为空结果
    """

    def __init__(self, config_manager, client: Optional[LLMClient] = None,
                 resolver: Optional[ModelResolver] = None):
        """
        初始化LLM分析器

        Args:
            config_manager: 配置管理器
            client: LLM 客户端，默认根据配置创建
            resolver: 模型选择器，默认根据配置创建
        """
        self.config_manager = config_manager
        self.client = client or LLMClient.from_config(config_manager)
        self.resolver = resolver or ModelResolver(self.client, config_manager.get_llm_model())

        self.topic_analyzer = TopicAnalyzer(self.client, self.resolver, config_manager)
        self.user_title_analyzer = UserTitleAnalyzer(self.client, self.resolver, config_manager)
        self.golden_quote_analyzer = GoldenQuoteAnalyzer(self.client, self.resolver, config_manager)

    async def analyze_topics(self, message_lines: Sequence[str]) -> Tuple[List[SummaryTopic], TokenUsage]:
        try:
            logger.info("开始话题分析")
            return await self.topic_analyzer.analyze(message_lines)
        except Exception as e:
            logger.error(f"话题分析失败: {e}", exc_info=True)
            return [], TokenUsage()

    async def analyze_user_titles(self, users: Sequence[UserStats]) -> Tuple[List[UserTitle], TokenUsage]:
        try:
            logger.info("开始用户称号分析")
            return await self.user_title_analyzer.analyze(users)
        except Exception as e:
            logger.error(f"用户称号分析失败: {e}", exc_info=True)
            return [], TokenUsage()

    async def analyze_golden_quotes(self, message_lines: Sequence[str]) -> Tuple[List[GoldenQuote], TokenUsage]:
        try:
            logger.info("开始金句分析")
            return await self.golden_quote_analyzer.analyze(message_lines)
        except Exception as e:
            logger.error(f"金句分析失败: {e}", exc_info=True)
            return [], TokenUsage()

    async def analyze_all(self, aggregate: AggregateResult) -> ExtractionResults:
        """
        并发执行三类分析

        Args:
            aggregate: 统计结果，作为提示词的数据来源

        Returns:
            ExtractionResults，失败或未启用的分析为空列表
        """
        message_lines = list(aggregate.message_lines)
        users = list(aggregate.ranked_users)

        topics_task = (
            self.analyze_topics(message_lines)
            if self.config_manager.get_topic_analysis_enabled() else _empty_result()
        )
        titles_task = (
            self.analyze_user_titles(users)
            if self.config_manager.get_user_title_analysis_enabled() else _empty_result()
        )
        quotes_task = (
            self.analyze_golden_quotes(message_lines)
            if self.config_manager.get_golden_quote_analysis_enabled() else _empty_result()
        )

        (topics, topic_tokens), (titles, title_tokens), (quotes, quote_tokens) = await asyncio.gather(
            topics_task, titles_task, quotes_task
        )

        return ExtractionResults(
            topics=topics,
            user_titles=titles,
            golden_quotes=quotes,
            token_usage=topic_tokens + title_tokens + quote_tokens,
        )


async def _empty_result() -> Tuple[list, TokenUsage]:
    return [], TokenUsage()
