"""报告生成"""
