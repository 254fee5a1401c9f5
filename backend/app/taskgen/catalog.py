"""Catalog builder: lookup maps and prompt strings derived from a snapshot."""
from __future__ import annotations

from dataclasses import dataclass, field

from backend.app.models.snapshot import DifficultyRow, PillarRow, Snapshot, TraitRow


@dataclass(frozen=True)
class StatEntry:
    code: str
    name: str
    pillar_id: int


@dataclass(frozen=True)
class Catalog:
    """Read-only view of the pillar/trait/stat/difficulty tables of one snapshot."""

    pillars_by_id: dict[int, PillarRow] = field(default_factory=dict)
    pillars_by_code: dict[str, PillarRow] = field(default_factory=dict)
    traits_by_id: dict[int, TraitRow] = field(default_factory=dict)
    traits_by_code: dict[str, TraitRow] = field(default_factory=dict)
    difficulties_by_id: dict[int, DifficultyRow] = field(default_factory=dict)
    difficulties_by_code: dict[str, DifficultyRow] = field(default_factory=dict)
    stats_by_code: dict[str, StatEntry] = field(default_factory=dict)
    pillars_text: str = ""
    traits_text: str = ""
    stats_text: str = ""
    difficulty_text: str = ""

    @property
    def pillar_codes(self) -> frozenset[str]:
        return frozenset(self.pillars_by_code)

    @property
    def stat_codes(self) -> frozenset[str]:
        return frozenset(self.stats_by_code)

    @property
    def difficulty_codes(self) -> frozenset[str]:
        return frozenset(self.difficulties_by_code)

    def pillar_label(self, pillar_id: int) -> str:
        return pillar_label(self.pillars_by_id, pillar_id)


def pillar_label(pillars_by_id: dict[int, PillarRow], pillar_id: int) -> str:
    """Parent pillar code, or a synthetic ``pillar_<id>`` when the pillar is absent."""
    pillar = pillars_by_id.get(pillar_id)
    return pillar.code if pillar else f"pillar_{pillar_id}"


def _labelled(code: str, name: str | None) -> str:
    return f"{code} ({name})" if name else code


def build_catalog(snapshot: Snapshot) -> Catalog:
    pillars_by_id = {p.pillar_id: p for p in snapshot.cat_pillar}
    pillars_by_code = {p.code: p for p in snapshot.cat_pillar}
    traits_by_id = {t.trait_id: t for t in snapshot.cat_trait}
    traits_by_code = {t.code: t for t in snapshot.cat_trait}
    difficulties_by_id = {d.difficulty_id: d for d in snapshot.cat_difficulty}
    difficulties_by_code = {d.code: d for d in snapshot.cat_difficulty}
    # Stats mirror traits one-to-one
    stats_by_code = {
        t.code: StatEntry(code=t.code, name=t.name or t.code, pillar_id=t.pillar_id)
        for t in snapshot.cat_trait
    }

    pillars_text = ", ".join(_labelled(p.code, p.name) for p in snapshot.cat_pillar)
    traits_text = ", ".join(
        f"{_labelled(t.code, t.name)} [{pillar_label(pillars_by_id, t.pillar_id)}]" for t in snapshot.cat_trait
    )
    stats_text = ", ".join(f"{s.code} [{pillar_label(pillars_by_id, s.pillar_id)}]" for s in stats_by_code.values())
    difficulty_text = ", ".join(
        _labelled(d.code, d.name) + (f" - xp_base {d.xp_base}" if d.xp_base else "")
        for d in snapshot.cat_difficulty
    )

    return Catalog(
        pillars_by_id=pillars_by_id,
        pillars_by_code=pillars_by_code,
        traits_by_id=traits_by_id,
        traits_by_code=traits_by_code,
        difficulties_by_id=difficulties_by_id,
        difficulties_by_code=difficulties_by_code,
        stats_by_code=stats_by_code,
        pillars_text=pillars_text,
        traits_text=traits_text,
        stats_text=stats_text,
        difficulty_text=difficulty_text,
    )
