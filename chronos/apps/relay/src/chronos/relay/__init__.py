"""Chronos Relay -- ChronosCore 任务查询与审议消息中继服务"""
