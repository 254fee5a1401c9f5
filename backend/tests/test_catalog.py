"""Catalog maps and prompt strings, plus the placeholder table built on top of them."""
from __future__ import annotations

from backend.app.constants import NO_VALUE, UNKNOWN_GAME_MODE
from backend.app.models.snapshot import GameModeRow, OnboardingSessionRow, Snapshot, UserRow
from backend.app.taskgen.catalog import build_catalog, pillar_label
from backend.app.taskgen.placeholders import build_placeholders, build_user_mini_profile
from backend.app.taskgen.snapshot import build_mock_snapshot


def _snapshot(**tables) -> Snapshot:
    base = {
        "cat_pillar": [{"pillar_id": 1, "code": "BODY", "name": "Body"}, {"pillar_id": 2, "code": "MIND"}],
        "cat_trait": [
            {"trait_id": 10, "pillar_id": 1, "code": "BODY_MOBILITY", "name": "Mobility"},
            {"trait_id": 11, "pillar_id": 9, "code": "ORPHAN"},
        ],
        "cat_difficulty": [
            {"difficulty_id": 1, "code": "Easy", "name": "Easy", "xp_base": 10},
            {"difficulty_id": 2, "code": "Legend"},
        ],
    }
    base.update(tables)
    return Snapshot.model_validate(base)


class TestBuildCatalog:
    def test_maps_are_keyed_by_id_and_code(self):
        catalog = build_catalog(_snapshot())
        assert catalog.pillars_by_code["BODY"].pillar_id == 1
        assert catalog.traits_by_id[10].code == "BODY_MOBILITY"
        assert catalog.difficulties_by_code["Easy"].xp_base == 10
        assert catalog.pillar_codes == {"BODY", "MIND"}
        assert catalog.difficulty_codes == {"Easy", "Legend"}

    def test_stats_mirror_traits(self):
        catalog = build_catalog(_snapshot())
        assert catalog.stat_codes == {"BODY_MOBILITY", "ORPHAN"}
        assert catalog.stats_by_code["BODY_MOBILITY"].name == "Mobility"
        assert catalog.stats_by_code["ORPHAN"].name == "ORPHAN"

    def test_prompt_strings(self):
        catalog = build_catalog(_snapshot())
        assert catalog.pillars_text == "BODY (Body), MIND"
        assert catalog.traits_text == "BODY_MOBILITY (Mobility) [BODY], ORPHAN [pillar_9]"
        assert catalog.stats_text == "BODY_MOBILITY [BODY], ORPHAN [pillar_9]"
        assert catalog.difficulty_text == "Easy (Easy) - xp_base 10, Legend"

    def test_pillar_label_falls_back_to_synthetic_code(self):
        catalog = build_catalog(_snapshot())
        assert catalog.pillar_label(1) == "BODY"
        assert catalog.pillar_label(42) == "pillar_42"
        assert pillar_label(catalog.pillars_by_id, 2) == "MIND"
        assert pillar_label({}, 7) == "pillar_7"

    def test_empty_snapshot_gives_empty_catalog(self):
        catalog = build_catalog(Snapshot())
        assert catalog.pillars_text == ""
        assert not catalog.stat_codes


class TestPlaceholders:
    def test_mock_user_renders_every_key(self):
        snapshot = build_mock_snapshot("user-7")
        user = snapshot.find_user("user-7")
        placeholders = build_placeholders(
            user,
            snapshot.find_onboarding("user-7"),
            snapshot.find_game_mode(user.game_mode_id),
            build_catalog(snapshot),
        )
        assert set(placeholders) == {
            "USER_MINI_PROFILE",
            "GAME_MODE",
            "WEEKLY_TARGET",
            "CATALOG_PILLARS",
            "CATALOG_TRAITS",
            "CATALOG_STATS",
            "CATALOG_DIFFICULTY",
            "USER_ID",
            "TASKS_GROUP_ID",
        }
        assert placeholders["GAME_MODE"] == "FLOW - Flow"
        assert placeholders["WEEKLY_TARGET"] == "3"
        assert placeholders["USER_ID"] == "user-7"
        assert placeholders["TASKS_GROUP_ID"] == "debug-group"

    def test_missing_game_mode_and_group(self):
        user = UserRow(user_id="u-1")
        placeholders = build_placeholders(user, None, None, build_catalog(Snapshot()))
        assert placeholders["GAME_MODE"] == UNKNOWN_GAME_MODE
        assert placeholders["WEEKLY_TARGET"] == NO_VALUE
        assert placeholders["TASKS_GROUP_ID"] == NO_VALUE

    def test_game_mode_without_name_renders_code(self):
        user = UserRow(user_id="u-1", game_mode_id=4)
        mode = GameModeRow(game_mode_id=4, code="LOW")
        assert build_placeholders(user, None, mode, build_catalog(Snapshot()))["GAME_MODE"] == "LOW"


class TestMiniProfile:
    def test_minimal_user_has_only_id(self):
        assert build_user_mini_profile(UserRow(user_id="u-1"), None, None) == "User ID: u-1"

    def test_language_and_timezone_fall_back_to_onboarding_meta(self):
        onboarding = OnboardingSessionRow(user_id="u-1", meta={"lang": "es", "tz": "America/Bogota"})
        profile = build_user_mini_profile(UserRow(user_id="u-1"), onboarding, None)
        assert "Preferred language: es" in profile
        assert "Preferred timezone: America/Bogota" in profile
        assert 'Onboarding meta: {"lang":"es","tz":"America/Bogota"}' in profile

    def test_user_fields_win_over_meta(self):
        user = UserRow(user_id="u-1", preferred_language="en", scheduler_enabled=False)
        onboarding = OnboardingSessionRow(meta={"lang": "es"}, client_id="web")
        mode = GameModeRow(game_mode_id=1, code="FLOW")
        profile = build_user_mini_profile(user, onboarding, mode)
        parts = profile.split(" | ")
        assert "Preferred language: en" in parts
        assert "Scheduler enabled: no" in parts
        assert parts[-2:] == ["Onboarding client: web", "Current mode: FLOW"]
