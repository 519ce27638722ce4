"""Stateless rule engines for locks, traps, puzzles, hazards and elements."""

from .checks import CheckResult, InteractionResult, class_skill_bonus, skill_check
from .elements import activate_element, depth_dc, generate_element
from .hazards import SAVE_DCS, generate_hazard, process_hazards, severity_for_depth
from .locks import generate_lock, pick_lock, use_key
from .puzzles import attempt_puzzle, generate_puzzle
from .status import (
    add_status_effect,
    armor_bonus,
    can_perform_action,
    has_status_effect,
    remove_status_effect,
    stat_modifier,
    tick_status_effects,
)
from .traps import check_entry_triggers, detect_trap, disarm_trap, generate_trap, trigger_trap

__all__ = [
    "SAVE_DCS",
    "CheckResult",
    "InteractionResult",
    "activate_element",
    "add_status_effect",
    "armor_bonus",
    "attempt_puzzle",
    "can_perform_action",
    "check_entry_triggers",
    "class_skill_bonus",
    "depth_dc",
    "detect_trap",
    "disarm_trap",
    "generate_element",
    "generate_hazard",
    "generate_lock",
    "generate_puzzle",
    "generate_trap",
    "has_status_effect",
    "pick_lock",
    "process_hazards",
    "remove_status_effect",
    "severity_for_depth",
    "skill_check",
    "stat_modifier",
    "tick_status_effects",
    "trigger_trap",
    "use_key",
]
