"""LLM 分析协调器测试"""

import asyncio
from unittest.mock import AsyncMock

from group_analysis.analysis.llm_analyzer import LLMAnalyzer
from group_analysis.analysis.statistics import aggregate
from group_analysis.analysis.utils.llm_utils import LLMResponse, LLMTransportError
from group_analysis.analysis.utils.yaml_utils import MissingStructuredBlockError
from group_analysis.models.data_models import TokenUsage
from tests.helpers import FakeLLMClient, create_message, make_config

PROMPTS = {
    "topic": "TOPICS\n{messages}",
    "user_titles": "TITLES\n{users}",
    "golden_quotes": "QUOTES\n{messages}",
}

TOPIC_RESPONSE = "```yaml\n- topic: 爬山\n  contributors:\n    - 小明\n  detail: 周末爬山\n```"
TITLE_RESPONSE = "```yaml\n- name: 小明\n  id: '1'\n  title: 龙王\n  mbti: ENFP\n  reason: 话多\n```"
QUOTE_RESPONSE = "```yaml\n- content: 地球是平的\n  sender: 小明\n  reason: 逆天\n```"


def sample_aggregate():
    return aggregate([
        create_message("1", "周末去爬山吗", sender_name="小明"),
        create_message("2", "好啊", sender_name="小红"),
    ])


def build_analyzer(responses, **sections):
    config = make_config(prompts=PROMPTS, **sections)
    client = FakeLLMClient(responses=responses)
    return LLMAnalyzer(config, client=client), client


class TestAnalyzeAll:
    def test_all_kinds_succeed(self):
        analyzer, client = build_analyzer({
            "TOPICS": LLMResponse(TOPIC_RESPONSE, TokenUsage(10, 1, 11)),
            "TITLES": LLMResponse(TITLE_RESPONSE, TokenUsage(20, 2, 22)),
            "QUOTES": LLMResponse(QUOTE_RESPONSE, TokenUsage(30, 3, 33)),
        })

        results = asyncio.run(analyzer.analyze_all(sample_aggregate()))

        assert [t.topic for t in results.topics] == ["爬山"]
        assert [t.title for t in results.user_titles] == ["龙王"]
        assert [q.content for q in results.golden_quotes] == ["地球是平的"]
        assert results.token_usage == TokenUsage(60, 6, 66)
        assert len(client.prompts) == 3

    def test_one_failure_is_isolated(self):
        """单项失败不影响其他分析"""
        analyzer, _ = build_analyzer({
            "TOPICS": LLMTransportError(500, "boom"),
            "TITLES": LLMResponse(TITLE_RESPONSE, TokenUsage(20, 2, 22)),
            "QUOTES": "没有代码块的回答",
        })

        results = asyncio.run(analyzer.analyze_all(sample_aggregate()))

        assert results.topics == []
        assert results.golden_quotes == []
        assert len(results.user_titles) == 1
        assert results.token_usage == TokenUsage(20, 2, 22)

    def test_disabled_kind_is_not_called(self):
        analyzer, client = build_analyzer(
            {
                "TOPICS": TOPIC_RESPONSE,
                "TITLES": TITLE_RESPONSE,
                "QUOTES": QUOTE_RESPONSE,
            },
            analysis={"golden_quote_analysis_enabled": False},
        )

        results = asyncio.run(analyzer.analyze_all(sample_aggregate()))

        assert results.golden_quotes == []
        assert len(results.topics) == 1
        assert not any(p.startswith("QUOTES") for p in client.prompts)

    def test_shared_model_resolution(self):
        """三个分析器共用一个模型选择器"""
        config = make_config(prompts=PROMPTS, llm={"model": None})
        client = FakeLLMClient(models=["qwen-max"], responses={
            "TOPICS": TOPIC_RESPONSE, "TITLES": TITLE_RESPONSE, "QUOTES": QUOTE_RESPONSE,
        })

        async def run():
            analyzer = LLMAnalyzer(config, client=client)
            await analyzer.analyze_all(sample_aggregate())
            return analyzer

        analyzer = asyncio.run(run())

        assert analyzer.topic_analyzer.resolver is analyzer.golden_quote_analyzer.resolver
        assert analyzer.resolver.resolved_model == "qwen-max"
        assert client.list_models_calls == 1

    def test_recovers_after_failed_discovery(self):
        """模型发现失败后，下一次分析在新的事件循环中三项都能完成"""
        config = make_config(prompts=PROMPTS, llm={"model": None})
        client = FakeLLMClient(models=[], responses={
            "TOPICS": TOPIC_RESPONSE, "TITLES": TITLE_RESPONSE, "QUOTES": QUOTE_RESPONSE,
        })
        analyzer = LLMAnalyzer(config, client=client)

        first = asyncio.run(analyzer.analyze_all(sample_aggregate()))
        assert (first.topics, first.user_titles, first.golden_quotes) == ([], [], [])

        client.models = ["qwen-14b"]
        second = asyncio.run(analyzer.analyze_all(sample_aggregate()))

        assert len(second.topics) == 1
        assert len(second.user_titles) == 1
        assert len(second.golden_quotes) == 1


class TestSingleKinds:
    def test_errors_degrade_to_empty(self):
        analyzer, _ = build_analyzer({})
        analyzer.topic_analyzer.analyze = AsyncMock(side_effect=MissingStructuredBlockError("no block"))

        topics, usage = asyncio.run(analyzer.analyze_topics(["a(1): hi"]))

        assert topics == []
        assert usage == TokenUsage()

    def test_unexpected_errors_degrade_to_empty(self):
        analyzer, _ = build_analyzer({})
        analyzer.user_title_analyzer.analyze = AsyncMock(side_effect=RuntimeError("bug"))

        titles, usage = asyncio.run(analyzer.analyze_user_titles([]))

        assert titles == []
        assert usage == TokenUsage()
