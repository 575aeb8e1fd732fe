"""packages/core 测试配置 -- 任务快照与消息存储 fixture"""

import pytest
from chronos.core.models import DeliberationMessage
from chronos.core.store import MessageStore, TaskSnapshotStore

AGENT_A = "0x" + "aa" * 20
AGENT_B = "0x" + "bb" * 20
AGENT_C = "0x" + "cc" * 20
SIGNATURE = "0x" + "ab" * 65


@pytest.fixture
def task_store(clock) -> TaskSnapshotStore:
    return TaskSnapshotStore(clock)


@pytest.fixture
def seeded_store(task_store: TaskSnapshotStore) -> TaskSnapshotStore:
    """一个三选项、需要 3 个 Agent、审议 120 秒的任务 #0"""
    task_store.apply_created(
        0,
        creator="0x" + "c0" * 20,
        description="ship it?",
        options=["Yes", "No", "Abstain"],
        required_agents=3,
        deliberation_duration=120,
        bounty="1000000000000000000",
    )
    return task_store


@pytest.fixture
def memory_messages() -> MessageStore:
    return MessageStore()


@pytest.fixture
def make_message():
    def _build(task_id: int = 0, content: str = "hello", sender: str = AGENT_A, ts: int = 1):
        return DeliberationMessage(
            task_id=task_id,
            sender=sender,
            content=content,
            timestamp=ts,
            signature=SIGNATURE,
        )

    return _build
