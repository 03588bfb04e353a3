"""
配置管理模块
负责合并默认配置、校验必填项并提供统一的配置访问接口
"""

import copy
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


DEFAULT_TOPIC_PROMPT = """你是一个帮我进行群聊信息总结的助手，生成总结内容时，你需要严格遵守下面的几个准则：
请分析接下来提供的群聊记录，提取出最多{maxTopics}个主要话题。

对于每个话题，请提供：
1. 话题名称（突出主题内容，尽量简明扼要）
2. 主要参与者（最多5人）
3. 话题详细描述（包含关键信息和结论）

注意：
- 对于比较有价值的点，稍微用一两句话详细讲讲，比如不要生成 "某某和某某讨论了某话题" 这种宽泛的内容，而是生成更加具体的讨论内容，让其他人只看这个消息就能知道讨论中有价值的，有营养的信息。
- 对于其中的部分信息，你需要特意提到主题施加的主体是谁，是哪个群友做了什么事情，而不要直接生成和群友没有关系的语句。
- 对于每一条总结，尽量讲清楚前因后果，以及话题的结论，是什么，为什么，怎么做，如果用户没有讲到细节，则可以不用这么做。
- 对于话题的描述内容，请在里面使用用户的昵称而不是用户的ID，避免输出用户ID和字符到话题描述内容中。

群聊记录：
{messages}

请严格按照以下 YAML 格式返回，放在 markdown 代码块中：
```yaml
- topic: 话题名称
  contributors:
    - 用户1 (用户ID)
    - 用户2 (用户ID)
  detail: |-
    话题描述内容（支持多行文本，
    保留换行符，适合多段落描述，不要在里面添加任何markdown语法，请使用纯文本）
```"""

DEFAULT_USER_TITLE_PROMPT = """请为以下群友分配合适的称号和MBTI类型。每个人只能有一个称号，每个称号只能给一个人。

可选称号：
- 龙王: 发言频繁但内容轻松的人
- 技术专家: 经常讨论技术话题的人
- 夜猫子: 经常在深夜发言的人
- 表情包军火库: 经常发表情的人
- 沉默终结者: 经常开启话题的人
- 评论家: 平均发言长度很长的人
- 阳角: 在群里很有影响力的人
- 互动达人: 经常回复别人的人
- ... (你可以自行进行拓展添加)

用户数据：
{users}

请严格按照以下 YAML 格式返回，放在 markdown 代码块中：
```yaml
- name: 用户名
  id: 用户ID
  title: 称号
  mbti: MBTI类型
  reason: |-
    获得此称号的原因（支持多行文本，不要在里面添加任何markdown语法，请使用纯文本）
```"""

DEFAULT_GOLDEN_QUOTE_PROMPT = """请从以下群聊记录中挑选出{maxGoldenQuotes}句最具冲击力、最令人惊叹的"金句"。这些金句需满足：
- 核心标准：**逆天的神人发言**，即具备颠覆常识的脑洞、逻辑跳脱的表达或强烈反差感的原创内容
- 典型特征：包含夸张类比、反常规结论、一本正经的"胡说八道"或突破语境的清奇思路，并且具备一定的冲击力，让人印象深刻。

对于每个金句，请提供：
1. 原文内容（完整保留发言细节）
2. 发言人昵称
3. 选择理由（具体说明其"逆天"之处，如逻辑颠覆点/脑洞角度/反差感）

此外，我将对你进行严格约束：
- 优先筛选 **逆天指数最高** 的内容：颠覆认知级 > 逻辑跳脱级 > 趣味调侃级，剔除单纯玩梗或网络热词堆砌的普通发言
- 重点标记包含极端类比、反常识论证或无厘头结论的内容。

群聊记录：
{messages}

请严格按照以下 YAML 格式返回，放在 markdown 代码块中：
```yaml
- content: 金句原文
  sender: 发言人昵称（注意不是 ID）
  reason: |-
    选择这句话的理由（需明确说明逆天特质，不要在里面添加任何markdown语法，请使用纯文本）
```"""


DEFAULT_CONFIG: Dict[str, Any] = {
    "llm": {
        "base_url": "https://api.openai.com/v1",
        "token": "",
        "model": None,
        "temperature": 1.5,
        "timeout": 120,
        "retries": 1,
        "backoff": 2,
    },
    "allowed_groups": [],
    "analysis": {
        "max_messages": 2000,
        "min_messages": 100,
        "max_users_in_report": 10,
        "max_topics": 5,
        "max_user_titles": 6,
        "max_golden_quotes": 3,
        "retention_days": 7,
        "topic_analysis_enabled": True,
        "user_title_analysis_enabled": True,
        "golden_quote_analysis_enabled": True,
    },
    "cache": {
        "size": 1000,
        "expiration": 24 * 60 * 60,
        "sweep_interval": 5 * 60,
        "retention_cleanup_interval": 6 * 60 * 60,
    },
    "prompts": {
        "topic": DEFAULT_TOPIC_PROMPT,
        "user_titles": DEFAULT_USER_TITLE_PROMPT,
        "golden_quotes": DEFAULT_GOLDEN_QUOTE_PROMPT,
    },
    "words_filter": [],
    "user_filter": [],
}


class ConfigError(Exception):
    """配置校验失败"""
    pass


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigManager:
    """配置管理器"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._raw = config or {}
        self.config = _deep_merge(DEFAULT_CONFIG, self._raw)

    def reload_config(self, config: Optional[Dict[str, Any]] = None):
        """重新加载配置"""
        if config is not None:
            self._raw = config
        self.config = _deep_merge(DEFAULT_CONFIG, self._raw)
        logger.info("配置已重新加载")

    def validate(self):
        """校验必填配置项"""
        if not self.get_llm_token():
            raise ConfigError("LLM token 未配置，请在插件配置中填写")

    # ========== LLM ==========

    def get_llm_base_url(self) -> str:
        return str(self.config["llm"]["base_url"]).rstrip("/")

    def get_llm_token(self) -> str:
        return self.config["llm"].get("token") or ""

    def get_llm_model(self) -> Optional[str]:
        model = self.config["llm"].get("model")
        if isinstance(model, str) and model.strip():
            return model.strip()
        return None

    def get_llm_temperature(self) -> float:
        return float(self.config["llm"]["temperature"])

    def get_llm_timeout(self) -> float:
        return float(self.config["llm"]["timeout"])

    def get_llm_retries(self) -> int:
        return max(1, int(self.config["llm"]["retries"]))

    def get_llm_backoff(self) -> float:
        return float(self.config["llm"]["backoff"])

    # ========== 群组 ==========

    def get_enabled_groups(self) -> List[str]:
        return [str(g) for g in self.config.get("allowed_groups", [])]

    def is_group_allowed(self, group_id: str) -> bool:
        enabled_groups = self.get_enabled_groups()
        return not enabled_groups or str(group_id) in enabled_groups

    def add_enabled_group(self, group_id: str):
        groups = self.config.setdefault("allowed_groups", [])
        if str(group_id) not in [str(g) for g in groups]:
            groups.append(str(group_id))

    def remove_enabled_group(self, group_id: str):
        self.config["allowed_groups"] = [
            g for g in self.config.get("allowed_groups", []) if str(g) != str(group_id)
        ]

    # ========== 分析 ==========

    def get_max_messages(self) -> int:
        return int(self.config["analysis"]["max_messages"])

    def get_min_messages_threshold(self) -> int:
        return int(self.config["analysis"]["min_messages"])

    def get_max_users_in_report(self) -> int:
        return int(self.config["analysis"]["max_users_in_report"])

    def get_max_topics(self) -> int:
        return int(self.config["analysis"]["max_topics"])

    def get_max_user_titles(self) -> int:
        return int(self.config["analysis"]["max_user_titles"])

    def get_max_golden_quotes(self) -> int:
        return int(self.config["analysis"]["max_golden_quotes"])

    def get_retention_days(self) -> int:
        return int(self.config["analysis"]["retention_days"])

    def get_topic_analysis_enabled(self) -> bool:
        return bool(self.config["analysis"]["topic_analysis_enabled"])

    def get_user_title_analysis_enabled(self) -> bool:
        return bool(self.config["analysis"]["user_title_analysis_enabled"])

    def get_golden_quote_analysis_enabled(self) -> bool:
        return bool(self.config["analysis"]["golden_quote_analysis_enabled"])

    # ========== 缓存 ==========

    def get_cache_size(self) -> int:
        return int(self.config["cache"]["size"])

    def get_cache_expiration(self) -> float:
        return float(self.config["cache"]["expiration"])

    def get_cache_sweep_interval(self) -> float:
        return float(self.config["cache"]["sweep_interval"])

    def get_retention_cleanup_interval(self) -> float:
        return float(self.config["cache"]["retention_cleanup_interval"])

    # ========== 提示词 ==========

    def get_topic_analysis_prompt(self) -> str:
        return self.config["prompts"].get("topic") or DEFAULT_TOPIC_PROMPT

    def get_user_title_analysis_prompt(self) -> str:
        return self.config["prompts"].get("user_titles") or DEFAULT_USER_TITLE_PROMPT

    def get_golden_quote_analysis_prompt(self) -> str:
        return self.config["prompts"].get("golden_quotes") or DEFAULT_GOLDEN_QUOTE_PROMPT

    # ========== 过滤 ==========

    def get_words_filter(self) -> List[str]:
        return [w for w in self.config.get("words_filter", []) if w]

    def get_user_filter(self) -> List[str]:
        return [str(u) for u in self.config.get("user_filter", [])]
