"""ChronosCore 合约 ABI 片段

只包含 relay 需要的事件与只读函数。写入函数（joinTask / commit / reveal /
resolve / claimBounty）由 Agent 直接调用，relay 不涉及。
"""


def _event(name: str, *inputs: tuple[str, str, bool]) -> dict:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": arg, "type": abi_type, "indexed": indexed}
            for arg, abi_type, indexed in inputs
        ],
    }


def _view(name: str, inputs: list[tuple[str, str]], outputs: list[tuple[str, str]]) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": arg, "type": abi_type} for arg, abi_type in inputs],
        "outputs": [{"name": arg, "type": abi_type} for arg, abi_type in outputs],
    }


EVENT_ABI: list[dict] = [
    _event(
        "TaskCreated",
        ("taskId", "uint256", True),
        ("creator", "address", True),
        ("description", "string", False),
        ("options", "string[]", False),
        ("bounty", "uint256", False),
        ("requiredAgents", "uint256", False),
        ("deliberationDuration", "uint256", False),
    ),
    _event(
        "TaskStarted",
        ("taskId", "uint256", True),
        ("deliberationStart", "uint256", False),
    ),
    _event("TaskCancelled", ("taskId", "uint256", True)),
    _event(
        "AgentJoined",
        ("taskId", "uint256", True),
        ("agent", "address", True),
    ),
    _event(
        "PhaseAdvanced",
        ("taskId", "uint256", True),
        ("phase", "uint8", False),
    ),
    _event(
        "CommitSubmitted",
        ("taskId", "uint256", True),
        ("agent", "address", True),
    ),
    _event(
        "RevealSubmitted",
        ("taskId", "uint256", True),
        ("agent", "address", True),
        ("optionIndex", "uint256", False),
    ),
    _event(
        "TaskResolved",
        ("taskId", "uint256", True),
        ("winningOption", "uint256", False),
        ("isTie", "bool", False),
    ),
    # 领取赏金，relay 不处理（decoder 忽略）
    _event(
        "BountyClaimed",
        ("taskId", "uint256", True),
        ("agent", "address", True),
        ("amount", "uint256", False),
    ),
]

# getTask 返回值顺序
TASK_RECORD_FIELDS: list[tuple[str, str]] = [
    ("creator", "address"),
    ("description", "string"),
    ("bounty", "uint256"),
    ("requiredAgents", "uint256"),
    ("deliberationDuration", "uint256"),
    ("deliberationStart", "uint256"),
    ("cancelled", "bool"),
    ("resolved", "bool"),
    ("winningOption", "uint256"),
    ("isTie", "bool"),
]

FUNCTION_ABI: list[dict] = [
    _view("taskCount", [], [("", "uint256")]),
    _view("getTask", [("taskId", "uint256")], TASK_RECORD_FIELDS),
    _view("getOptions", [("taskId", "uint256")], [("", "string[]")]),
    _view("getAgents", [("taskId", "uint256")], [("", "address[]")]),
    _view("revealCount", [("", "uint256")], [("", "uint256")]),
    _view("optionVotes", [("", "uint256"), ("", "uint256")], [("", "uint256")]),
]

CHRONOS_CORE_ABI: list[dict] = EVENT_ABI + FUNCTION_ABI
