"""Chronos Core -- 任务快照、阶段时钟与审议消息存储"""
