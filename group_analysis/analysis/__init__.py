"""LLM 分析模块"""
