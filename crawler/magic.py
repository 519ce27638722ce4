"""Spellcasting for wizards and clerics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

from .characters import Character, StatusEffect
from .combat import attack_roll
from .content import ContentLibrary, SpellDefinition
from .dice import roll_dice
from .dungeon.models import Enemy
from .errors import RuleViolation, UserInputError
from .rng import SeededRandom
from .rules.status import add_status_effect, can_perform_action

__all__ = ["MagicSystem", "SpellResult"]

log = logging.getLogger(__name__)


@dataclass
class SpellResult:
    spell: SpellDefinition
    message: str
    damage: int = 0
    healing: int = 0
    target: Enemy | None = None


class MagicSystem:
    def __init__(self, library: ContentLibrary, rng: SeededRandom) -> None:
        self.library = library
        self.rng = rng

    def known_spells(self, character: Character) -> List[SpellDefinition]:
        spells = []
        for key in character.character_class.known_spells:
            spell = self.library.spells.find(key)
            if spell is None:
                log.warning("Class %s lists unknown spell %s", character.class_key, key)
                continue
            spells.append(spell)
        return spells

    def find_spell(self, character: Character, name: str) -> SpellDefinition:
        if not character.has_mana:
            raise RuleViolation("You don't know how to cast spells.")
        if not name:
            known = ", ".join(spell.name for spell in self.known_spells(character))
            raise UserInputError(f"Cast what? You know: {known}.")
        wanted = name.strip().lower()
        for spell in self.known_spells(character):
            if wanted in (spell.key, spell.name.lower(), spell.key.replace("_", " ")):
                return spell
        if self.library.spells.find(wanted) is not None:
            raise RuleViolation("You don't know that spell.")
        raise UserInputError(f"There is no spell called '{name}'.")

    def cast(self, character: Character, name: str, *, targets: Sequence[Enemy] = ()) -> SpellResult:
        """Spend mana and resolve ``name`` against the first living target."""

        spell = self.find_spell(character, name)
        if not can_perform_action(character, "cast"):
            raise RuleViolation("You cannot see well enough to cast.")
        if (character.mana_current or 0) < spell.mana_cost:
            raise RuleViolation(f"Not enough mana to cast {spell.name}.")
        living = [enemy for enemy in targets if enemy.is_alive]
        if spell.effect == "damage" and not living:
            raise RuleViolation("There is nothing here to target.")

        character.mana_current = (character.mana_current or 0) - spell.mana_cost
        prefix = f"{character.name} casts {spell.name}!"
        if spell.effect == "damage":
            return self._damage(character, spell, living[0], prefix)
        if spell.effect == "heal":
            healed = character.heal(roll_dice(spell.dice or "1d4", self.rng))
            return SpellResult(spell, f"{prefix} You recover {healed} hit points.", healing=healed)
        if spell.status_effect:
            add_status_effect(character, StatusEffect.from_dict(spell.status_effect))
        return SpellResult(spell, f"{prefix} {spell.description}".strip())

    def _damage(self, character: Character, spell: SpellDefinition, target: Enemy, prefix: str) -> SpellResult:
        critical = False
        if not spell.auto_hit:
            ability = character.character_class.spellcasting_ability or "INT"
            result = attack_roll(character.modifier(ability) + character.proficiency, target.armor_class, rng=self.rng)
            if not result.hits:
                return SpellResult(spell, f"{prefix} The spell misses {target.name}.", target=target)
            critical = result.is_critical_hit
        dealt = target.take_damage(roll_dice(spell.dice or "1d6", self.rng, critical=critical))
        message = f"{prefix} {target.name} takes {dealt} damage."
        if not target.is_alive:
            message += f" {target.name} is defeated!"
        return SpellResult(spell, message, damage=dealt, target=target)
