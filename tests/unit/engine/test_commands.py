"""Tests for command decoding and the dispatch error taxonomy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from infinite_adventure.core.exceptions import (
    InvalidEnumValueError,
    MalformedArgumentsError,
    MissingFieldError,
    UnknownOperationError,
)
from infinite_adventure.engine.commands import (
    AttackActor,
    CreateItem,
    EndCombat,
    MoveTo,
    StartCombat,
    decode_command,
)
from infinite_adventure.models import ConsumedState, Direction, ItemType, NormalState, StatusType


class TestDecodeCommand:
    """Tests for decode_command."""

    def test_json_text(self) -> None:
        """Test decoding a JSON argument string."""
        command = decode_command("move_to", '{"direction": "north"}')

        assert isinstance(command, MoveTo)
        assert command.direction is Direction.NORTH

    def test_mapping(self) -> None:
        """Test decoding an already-parsed mapping."""
        command = decode_command("start_combat", {"enemy_ids": ["goblin"]})

        assert isinstance(command, StartCombat)
        assert command.enemy_ids == ["goblin"]

    @pytest.mark.parametrize("arguments", [None, "", "   "])
    def test_blank_arguments_mean_empty_object(self, arguments: str | None) -> None:
        """Test blank payloads decode as {} for operations without required fields."""
        command = decode_command("end_combat", arguments)

        assert isinstance(command, EndCombat)
        assert command.victor_id is None

    def test_direction_case_insensitive(self) -> None:
        """Test direction names are normalised."""
        assert decode_command("move_to", {"direction": " East "}).direction is Direction.EAST

    def test_extra_fields_ignored(self) -> None:
        """Test unexpected fields are dropped."""
        command = decode_command("attack_actor", {"attacker_id": "player", "target_id": "goblin", "mood": "angry"})

        assert isinstance(command, AttackActor)
        assert command.weapon_id is None

    def test_create_item_nested_payload(self) -> None:
        """Test nested state and properties decode into models."""
        command = decode_command(
            "create_item",
            {
                "id": "potion",
                "item_type": "Consumable",
                "state": {"Consumed": {"charges": 3, "max_charges": 3}},
                "properties": {"usable": True},
            },
        )

        assert isinstance(command, CreateItem)
        assert command.item_type is ItemType.CONSUMABLE
        assert command.state == ConsumedState(charges=3, max_charges=3)
        assert command.properties is not None and command.properties.usable

    def test_commands_are_frozen(self) -> None:
        """Test decoded commands cannot be changed."""
        command = decode_command("set_item_state", {"item_id": "door", "state": "Normal"})

        assert command.state == NormalState()
        with pytest.raises(ValidationError):
            command.item_id = "window"  # type: ignore[misc]


class TestDecodeErrors:
    """Tests for decoding failures."""

    def test_unknown_operation(self) -> None:
        """Test unknown names are rejected."""
        with pytest.raises(UnknownOperationError) as exc_info:
            decode_command("teleport", {})

        assert exc_info.value.details["tool_name"] == "teleport"

    @pytest.mark.parametrize("arguments", ["{not json", "[1, 2]", '"north"', "42"])
    def test_not_a_json_object(self, arguments: str) -> None:
        """Test payloads that are not JSON objects."""
        with pytest.raises(MalformedArgumentsError):
            decode_command("move_to", arguments)

    def test_missing_field(self) -> None:
        """Test a missing required field names the field."""
        with pytest.raises(MissingFieldError) as exc_info:
            decode_command("attack_actor", {"attacker_id": "player"})

        assert exc_info.value.field_name == "target_id"

    def test_invalid_direction(self) -> None:
        """Test an unknown direction is an enumeration error."""
        with pytest.raises(InvalidEnumValueError) as exc_info:
            decode_command("move_to", {"direction": "up"})

        assert exc_info.value.field_name == "direction"
        assert exc_info.value.invalid_value == "up"

    def test_invalid_item_type(self) -> None:
        """Test an unknown item type is an enumeration error."""
        with pytest.raises(InvalidEnumValueError) as exc_info:
            decode_command("create_item", {"id": "blade", "item_type": "Sword"})

        assert exc_info.value.field_name == "item_type"
        assert exc_info.value.invalid_value == "Sword"

    def test_invalid_item_state(self) -> None:
        """Test an unknown state tag is an enumeration error."""
        with pytest.raises(InvalidEnumValueError) as exc_info:
            decode_command("set_item_state", {"item_id": "door", "state": "Shattered"})

        assert exc_info.value.invalid_value == "Shattered"

    def test_invalid_status_type(self) -> None:
        """Test an unknown status effect is an enumeration error."""
        with pytest.raises(InvalidEnumValueError):
            decode_command(
                "apply_status_effect",
                {"target_id": "goblin", "effect_type": "Confused", "duration": 2},
            )

    def test_wrong_shape(self) -> None:
        """Test a shape mismatch is a generic malformed error."""
        with pytest.raises(MalformedArgumentsError) as exc_info:
            decode_command("start_combat", {"enemy_ids": "goblin"})

        assert not isinstance(exc_info.value, (MissingFieldError, InvalidEnumValueError))

    def test_status_effect_decodes(self) -> None:
        """Test a valid status effect payload."""
        command = decode_command(
            "apply_status_effect",
            {"target_id": "goblin", "effect_type": "Poison", "duration": 2, "severity": 3},
        )
        assert command.effect_type is StatusType.POISON
