"""Tool registrations."""

from ..registry import ToolRegistry
from .analysis import register_analysis_tools
from .automations import register_automation_tools
from .counters import register_counter_tools
from .entities import register_entity_tools
from .groups import register_group_tools
from .helpers import register_helper_tools
from .scenes import register_scene_tools
from .schedules import register_schedule_tools
from .scripts import register_script_tools
from .targets import register_target_tools
from .timers import register_timer_tools


def register_tools(registry: ToolRegistry) -> None:
    """Register all tools."""
    register_automation_tools(registry)
    register_script_tools(registry)
    register_entity_tools(registry)
    register_analysis_tools(registry)
    register_scene_tools(registry)
    register_schedule_tools(registry)
    register_helper_tools(registry)
    register_counter_tools(registry)
    register_timer_tools(registry)
    register_group_tools(registry)
    register_target_tools(registry)
