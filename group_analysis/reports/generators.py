"""
报告生成器模块
负责把分析报告转换为文本格式，图片渲染由宿主完成
"""

from ..models.data_models import AnalysisReport


class ReportGenerator:
    """报告生成器"""

    def generate_text_report(self, report: AnalysisReport) -> str:
        """生成文本格式的分析报告"""
        stats = report.statistics

        text = f"📊 群聊分析报告 ({report.analysis_date})\n"
        text += f"群组: {report.group_id}\n\n"
        text += (
            f"总消息: {stats.total_messages} | 参与人数: {stats.participant_count} | "
            f"总字数: {stats.total_chars} | 表情: {stats.total_emoji_count}\n"
        )
        text += f"最活跃时段: {report.most_active_period}\n"
        if report.most_active_user:
            user = report.most_active_user
            text += f"最活跃群友: {user.nickname} ({user.message_count} 条)\n"

        text += "\n💬 热门话题:\n"
        if report.topics:
            for topic in report.topics:
                text += f"- {topic.topic} (参与者: {', '.join(topic.contributors)})\n  {topic.detail}\n"
        else:
            text += "无明显话题\n"

        text += "\n🏆 群友称号:\n"
        if report.user_titles:
            for title in report.user_titles:
                mbti = f" ({title.mbti})" if title.mbti and title.mbti != "N/A" else ""
                text += f"- {title.name}: {title.title}{mbti} - {title.reason}\n"
        else:
            text += "无特殊称号\n"

        text += "\n💬 群圣经:\n"
        if report.golden_quotes:
            for quote in report.golden_quotes:
                text += f"- \"{quote.content}\" —— {quote.sender}\n  理由: {quote.reason}\n"
        else:
            text += "无金句记录\n"

        return text
