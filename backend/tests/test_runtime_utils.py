"""Tests for lobby validation and distribution helpers."""
import random

import pytest

from mafia_lobby.runtime_constants import ROOM_CODE_CHARS
from mafia_lobby.runtime_types import Player, RoomSettings
from mafia_lobby.runtime_utils import (
    all_players_ready,
    calculate_role_distribution,
    generate_player_id,
    get_minimum_players,
    is_valid_room_code,
    normalize_room_code,
    quota_for_ready_players,
    random_room_code,
    shuffle,
    validate_username,
)


class TestRoomCodes:
    def test_generated_code_has_six_alphabet_chars(self):
        rng = random.Random(7)
        for _ in range(500):
            code = random_room_code(rng=rng)
            assert len(code) == 6
            assert all(ch in ROOM_CODE_CHARS for ch in code)
            assert is_valid_room_code(code)

    def test_alphabet_is_uppercase_alphanumeric(self):
        assert len(ROOM_CODE_CHARS) == 36
        assert set(ROOM_CODE_CHARS) == set("ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")

    @pytest.mark.parametrize("code", ["abc123", "ABC12", "ABC1234", "ABC-12", "ABC123\n", "", None, 123456])
    def test_invalid_codes_rejected(self, code):
        assert is_valid_room_code(code) is False

    def test_normalize_uppercases_and_strips(self):
        assert normalize_room_code("  ab12cd ") == "AB12CD"
        assert normalize_room_code(None) == ""


class TestValidateUsername:
    def test_rejects_empty(self):
        assert validate_username("") == (False, "Username is required")
        assert validate_username("   ") == (False, "Username is required")
        assert validate_username(None)[0] is False

    def test_rejects_single_character(self):
        is_valid, message = validate_username("a")
        assert is_valid is False
        assert "at least 2" in message

    def test_rejects_21_characters(self):
        is_valid, message = validate_username("x" * 21)
        assert is_valid is False
        assert "less than 20" in message

    def test_accepts_20_characters(self):
        assert validate_username("x" * 20) == (True, "")

    @pytest.mark.parametrize("name", ["bob!", "al@ice", "名字名字", "semi;colon"])
    def test_rejects_disallowed_characters(self, name):
        is_valid, message = validate_username(name)
        assert is_valid is False
        assert "can only contain" in message

    def test_accepts_bob_2(self):
        assert validate_username("Bob_2") == (True, "")

    def test_trims_before_checking_length(self):
        assert validate_username("  Al  ") == (True, "")


class TestRoleDistribution:
    @pytest.mark.parametrize(
        "total,mafia,detective,doctor",
        [(4, 1, 1, 1), (7, 2, 1, 1), (10, 3, 1, 1), (5, 0, 0, 0), (4, 2, 1, 1)],
    )
    def test_civilians_fill_remainder(self, total, mafia, detective, doctor):
        quota = calculate_role_distribution(total, mafia, detective, doctor)
        assert quota.civilian == total - (mafia + detective + doctor)
        assert quota.civilian >= 0
        assert quota.is_valid is True
        assert quota.total == total

    def test_invalid_when_specials_exceed_total(self):
        quota = calculate_role_distribution(4, 3, 1, 1)
        assert quota.civilian == -1
        assert quota.is_valid is False

    def test_ready_quota_clamps_specials(self):
        settings = RoomSettings(total_players=7, mafia=2, detective=1, doctor=1)
        quota = quota_for_ready_players(settings, 4)
        assert (quota.mafia, quota.detective, quota.doctor, quota.civilian) == (1, 1, 1, 1)

    def test_ready_quota_caps_detective_and_doctor_at_one(self):
        settings = RoomSettings(total_players=12, mafia=3, detective=2, doctor=2)
        quota = quota_for_ready_players(settings, 12)
        assert (quota.mafia, quota.detective, quota.doctor, quota.civilian) == (3, 1, 1, 7)

    def test_ready_quota_keeps_configured_mafia_when_below_cap(self):
        settings = RoomSettings(total_players=9, mafia=1, detective=0, doctor=1)
        quota = quota_for_ready_players(settings, 9)
        assert (quota.mafia, quota.detective, quota.doctor, quota.civilian) == (1, 0, 1, 7)


class TestShuffle:
    @pytest.mark.parametrize("size", [0, 1, 2, 5, 13])
    def test_shuffle_is_a_permutation(self, size):
        items = [f"item-{index % 3}" for index in range(size)]
        result = shuffle(items, random.Random(size))
        assert sorted(result) == sorted(items)
        assert len(result) == size

    def test_shuffle_does_not_mutate_input(self):
        items = [1, 2, 3, 4]
        shuffle(items, random.Random(1))
        assert items == [1, 2, 3, 4]


class TestLobbyHelpers:
    def test_minimum_players(self):
        assert get_minimum_players(RoomSettings(7, 2, 1, 1)) == 6
        assert get_minimum_players(RoomSettings(4, 1, 0, 0)) == 4

    def test_all_players_ready(self):
        players = [Player("a", "Alice", "t", ready=True), Player("b", "Bob", "t", ready=True)]
        assert all_players_ready(players) is True
        players[1].ready = False
        assert all_players_ready(players) is False
        assert all_players_ready([]) is False

    def test_player_ids_are_unique(self):
        ids = {generate_player_id() for _ in range(200)}
        assert len(ids) == 200
        assert all(player_id.startswith("player_") for player_id in ids)
