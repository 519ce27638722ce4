from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.commands import ACTIONS, VERB_ACTIONS, parse_command
from crawler.errors import UnknownCommandError, UserInputError


@pytest.mark.parametrize(
    ("text", "direction"),
    [("north", "north"), ("N", "north"), ("s", "south"), ("go east", "east"), ("move W", "west")],
)
def test_movement_words(text: str, direction: str) -> None:
    command = parse_command(text)
    assert command.action == "move"
    assert command.direction == direction


def test_synonyms_map_to_the_same_action() -> None:
    assert {parse_command(verb + " goblin").action for verb in ("attack", "kill", "fight", "hit")} == {"attack"}
    assert parse_command("take torch").action == "get"
    assert parse_command("i").action == "inventory"
    assert parse_command("x chest").target == "chest"


def test_every_synonym_targets_a_known_action() -> None:
    assert set(VERB_ACTIONS.values()) <= set(ACTIONS)


def test_targets_keep_the_rest_of_the_line() -> None:
    command = parse_command("  Equip   Flaming Longsword ")
    assert command.action == "equip"
    assert command.verb == "equip"
    assert command.target == "flaming longsword"
    assert command.raw == "Equip   Flaming Longsword"


def test_pick_means_get_unless_it_is_a_lock() -> None:
    pickup = parse_command("pick up iron key")
    assert pickup.action == "get"
    assert pickup.target == "iron key"

    lock = parse_command("pick lock east")
    assert lock.action == "pick_lock"
    assert lock.direction == "east"
    assert parse_command("lockpick").action == "pick_lock"


def test_detect_traps_and_search() -> None:
    assert parse_command("detect traps").action == "detect_traps"
    assert parse_command("detect").action == "search"


def test_unknown_verbs_carry_the_verb() -> None:
    with pytest.raises(UnknownCommandError) as excinfo:
        parse_command("xyzzy now")
    assert excinfo.value.verb == "xyzzy"
    assert str(excinfo.value) == "Unknown command: xyzzy. Type 'help' for available commands."
    assert isinstance(excinfo.value, UserInputError)


def test_empty_or_aimless_input_is_rejected() -> None:
    with pytest.raises(UserInputError):
        parse_command("   ")
    with pytest.raises(UserInputError):
        parse_command("go")
    with pytest.raises(UserInputError):
        parse_command("go sideways")
