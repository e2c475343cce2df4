"""
面试分析归一化服务
把 Vapi 语音面试回传的分析片段合并为统一的评估结果并持久化
"""

__version__ = "1.0.0"
