from backend.llm.task_types import TASK_TIERS, TaskName, get_task_tier
from backend.schemas import ModelTier


class TestTaskName:
    def test_all_task_names_have_tiers(self):
        for name in TaskName:
            assert name in TASK_TIERS

    def test_task_name_values(self):
        assert TaskName.ANALYSIS == "analysis"
        assert TaskName.PRD == "prd"
        assert TaskName.EXPORT == "export"
        assert TaskName.DESIGN_BRIEF == "design_brief"

    def test_task_name_count(self):
        assert len(TaskName) == 12


class TestTaskTiers:
    def test_speed_tier(self):
        assert TASK_TIERS[TaskName.ANALYSIS] == ModelTier.SPEED
        assert TASK_TIERS[TaskName.CHAT_WITH_EXPORT] == ModelTier.SPEED

    def test_medium_tier(self):
        assert TASK_TIERS[TaskName.FEATURES] == ModelTier.MEDIUM
        assert TASK_TIERS[TaskName.COMPONENT_TREE] == ModelTier.MEDIUM

    def test_max_tier(self):
        assert TASK_TIERS[TaskName.PRD] == ModelTier.MAX
        assert TASK_TIERS[TaskName.STORY_FILES] == ModelTier.MAX


class TestGetTaskTier:
    def test_known_task(self):
        assert get_task_tier("export") == ModelTier.MAX

    def test_enum_member(self):
        assert get_task_tier(TaskName.REFINE_FEATURES) == ModelTier.SPEED

    def test_unknown_task(self):
        assert get_task_tier("custom_task") is None
