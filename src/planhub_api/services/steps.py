"""策划流程步骤定义。"""

# 步骤数量固定为 9，序号从 1 开始。
WORKFLOW_STEPS: dict[int, str] = {
    1: "服务概述与目标设定",
    2: "目标用户分析",
    3: "核心功能定义",
    4: "用户体验设计",
    5: "技术栈与架构",
    6: "开发计划与里程碑",
    7: "风险分析与应对方案",
    8: "成效指标与衡量方法",
    9: "上线与营销策略",
}
WORKFLOW_STEP_COUNT = len(WORKFLOW_STEPS)


def step_name(step: int) -> str | None:
    """返回步骤名称，非法步骤返回 None。"""
    return WORKFLOW_STEPS.get(step)


def is_valid_step(step: object) -> bool:
    return isinstance(step, int) and not isinstance(step, bool) and step in WORKFLOW_STEPS
