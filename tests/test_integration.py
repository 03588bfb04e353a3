"""分析入口的端到端测试"""

import asyncio
from datetime import datetime, timedelta

import pytest

from group_analysis import (
    ConfigError,
    GroupDailyAnalysis,
    GroupNotEnabledError,
    NotEnoughMessagesError,
)
from group_analysis.analysis.utils.llm_utils import LLMResponse
from group_analysis.models.data_models import TokenUsage
from tests.helpers import FakeLLMClient, create_message

PROMPTS = {
    "topic": "TOPICS\n{messages}",
    "user_titles": "TITLES\n{users}",
    "golden_quotes": "QUOTES\n{messages}",
}


class InMemoryStore:
    """按时间范围查询的内存消息存储"""

    def __init__(self, messages=None):
        self.messages = list(messages or [])
        self.queries = []
        self.deleted_before = []

    async def save_message(self, message):
        self.messages.append(message)

    async def fetch_history(self, channel_id, platform, start_time, end_time, limit):
        self.queries.append((channel_id, platform, start_time, end_time, limit))
        start, end = start_time.timestamp(), end_time.timestamp()
        matched = [
            m for m in self.messages
            if m.group_id == channel_id and m.platform == platform and start <= m.timestamp <= end
        ]
        return sorted(matched, key=lambda m: m.timestamp)[:limit]

    async def delete_messages_before(self, cutoff):
        self.deleted_before.append(cutoff)


def yesterday_at(hour: int, minute: int = 0) -> float:
    day = datetime.now().date() - timedelta(days=1)
    return datetime(day.year, day.month, day.day, hour, minute).timestamp()


def busy_group_messages():
    """A 在凌晨 2 点发 100 条，B 下午 30 条，C 晚上 20 条"""
    messages = []
    for i in range(100):
        messages.append(create_message("1", f"夜里好{i}", timestamp=yesterday_at(2, i % 60), sender_name="阿A"))
    for i in range(30):
        messages.append(create_message("2", f"下午好{i}", timestamp=yesterday_at(14, i), sender_name="阿B"))
    for i in range(20):
        messages.append(create_message("3", f"晚上好{i}", timestamp=yesterday_at(20, i), sender_name="阿C"))
    return messages


def build_plugin(store, client, **overrides):
    config = {
        "llm": {"token": "sk-test", "model": "test-model", "backoff": 0},
        "prompts": PROMPTS,
    }
    config.update(overrides)
    return GroupDailyAnalysis(config, store, llm_client=client)


class TestAnalyzeGroup:
    def test_statistics_survive_llm_failures(self):
        """所有 LLM 调用失败时仍然生成仅含统计的报告"""
        plugin = build_plugin(InMemoryStore(busy_group_messages()), FakeLLMClient())

        report = asyncio.run(plugin.analyze_group("10001", "qq", days=2))

        assert report.statistics.total_messages == 150
        assert report.statistics.participant_count == 3
        assert report.most_active_period == "2:00-3:00"
        assert report.most_active_user.user_id == "1"
        assert report.most_active_user.night_ratio == 1.0
        assert report.topics == ()
        assert report.user_titles == ()
        assert report.golden_quotes == ()
        assert report.token_usage == TokenUsage()
        assert report.has_content() is False

    def test_full_report(self):
        client = FakeLLMClient(responses={
            "TOPICS": LLMResponse(
                "```yaml\n- topic: 熬夜\n  contributors:\n    - 阿A (1)\n  detail: |-\n    阿A凌晨还在聊天\n```",
                TokenUsage(100, 10, 110),
            ),
            "TITLES": LLMResponse(
                "```yaml\n- name: 阿A\n  id: 1\n  title: 夜猫子\n  mbti: INTP\n  reason: |-\n    深夜发言最多\n```",
                TokenUsage(50, 5, 55),
            ),
            "QUOTES": LLMResponse(
                "```yaml\n- content: 夜里好0\n  sender: 阿A\n  reason: |-\n    开场白\n```",
                TokenUsage(80, 8, 88),
            ),
        })
        plugin = build_plugin(InMemoryStore(busy_group_messages()), client)

        report = asyncio.run(plugin.analyze_group("10001", "qq", days=2))

        assert [t.topic for t in report.topics] == ["熬夜"]
        assert report.user_titles[0].user_id == "1"
        assert report.golden_quotes[0].content == "夜里好0"
        assert report.token_usage == TokenUsage(230, 23, 253)

        topic_prompt = next(p for p in client.prompts if p.startswith("TOPICS"))
        assert "阿A(1): 夜里好0" in topic_prompt
        title_prompt = next(p for p in client.prompts if p.startswith("TITLES"))
        assert "- 阿A (ID:1): 发言100条" in title_prompt

        text = plugin.render_text(report)
        assert "熬夜" in text
        assert "夜猫子 (INTP)" in text
        assert "最活跃时段: 2:00-3:00" in text

    def test_users_truncated_in_report(self):
        plugin = build_plugin(
            InMemoryStore(busy_group_messages()), FakeLLMClient(),
            analysis={"max_users_in_report": 2},
        )

        report = asyncio.run(plugin.analyze_group("10001", "qq", days=2))

        assert [u.user_id for u in report.users] == ["1", "2"]
        assert len(report.statistics.ranked_users) == 3

    def test_not_enough_messages(self):
        messages = [create_message("1", "hi", timestamp=yesterday_at(12)) for _ in range(5)]
        plugin = build_plugin(InMemoryStore(messages), FakeLLMClient())

        with pytest.raises(NotEnoughMessagesError) as excinfo:
            asyncio.run(plugin.analyze_group("10001", "qq", days=2))

        assert (excinfo.value.count, excinfo.value.required) == (5, 100)

    def test_group_not_enabled(self):
        store = InMemoryStore(busy_group_messages())
        plugin = build_plugin(store, FakeLLMClient(), allowed_groups=["999"])

        with pytest.raises(GroupNotEnabledError):
            asyncio.run(plugin.analyze_group("10001", "qq"))

        assert store.queries == []

    def test_days_are_clamped(self):
        store = InMemoryStore()
        plugin = build_plugin(store, FakeLLMClient(), analysis={"min_messages": 0})

        asyncio.run(plugin.analyze_group("10001", "qq", days=365))
        asyncio.run(plugin.analyze_group("10001", "qq", days=0))

        (_, _, start1, end1, _), (_, _, start2, end2, _) = store.queries
        assert end1 - start1 == timedelta(days=30)
        assert end2 - start2 == timedelta(days=1)

    def test_missing_token(self):
        with pytest.raises(ConfigError):
            GroupDailyAnalysis({}, InMemoryStore())


class TestIngestion:
    def test_on_message_filters_and_caches(self):
        store = InMemoryStore()
        plugin = build_plugin(store, FakeLLMClient(), user_filter=["2"])

        async def run():
            accepted = await plugin.on_message(create_message("1", "hello"))
            rejected = await plugin.on_message(create_message("2", "bot"))
            return accepted, rejected

        assert asyncio.run(run()) == (True, False)
        assert [m.sender_id for m in store.messages] == ["1"]
        assert ("qq", "1") in plugin.cache
        assert ("qq", "2") not in plugin.cache

    def test_start_and_stop(self):
        plugin = build_plugin(InMemoryStore(), FakeLLMClient())

        async def run():
            await plugin.start()
            running = plugin.scheduler.is_running
            await plugin.stop()
            return running

        assert asyncio.run(run()) is True
        assert plugin.scheduler.is_running is False


class TestTextReport:
    def test_empty_sections_have_placeholders(self):
        plugin = build_plugin(InMemoryStore(busy_group_messages()), FakeLLMClient())
        report = asyncio.run(plugin.analyze_group("10001", "qq", days=2))

        text = plugin.render_text(report)

        assert text.startswith("📊 群聊分析报告")
        assert "群组: 10001" in text
        assert "总消息: 150" in text
        assert "最活跃群友: 阿A (100 条)" in text
        assert "无明显话题" in text
        assert "无特殊称号" in text
        assert "无金句记录" in text


class TestReportExport:
    def test_to_dict_is_an_independent_copy(self):
        """to_dict 递归展开嵌套数据类，修改结果不影响报告"""
        plugin = build_plugin(InMemoryStore(busy_group_messages()), FakeLLMClient())
        report = asyncio.run(plugin.analyze_group("10001", "qq", days=2))

        data = report.to_dict()

        assert data["group_id"] == "10001"
        assert data["statistics"]["total_messages"] == 150
        assert data["statistics"]["hour_totals"][2] == 100
        assert data["users"][0]["user_id"] == "1"
        assert data["users"][0]["active_hours"][2] == 100
        assert data["most_active_user"]["night_ratio"] == 1.0
        assert data["token_usage"] == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

        data["statistics"]["hour_totals"][2] = 0
        data["users"][0]["message_count"] = 0

        assert report.statistics.hour_totals[2] == 100
        assert report.users[0].message_count == 100
