"""
Best-variant selection within product families.

A family groups canonical products that are tuning/feature variants of one
base device (e.g. "Truthear Zero" and "Truthear Zero (DSP)"). Exactly one
member per family is surfaced as the primary; the rest are hidden from
search. The flag is always recomputed from the quality score, never
hand-edited, and the output is a minimal diff so re-runs write nothing.

Rules:
    - members with a null quality score never win
    - a family with no scored member is skipped entirely (existing flags stay)
    - strictly highest score wins; on ties the first member encountered wins
"""

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from catalog_linker.models import FamilyMember, VariantFlagDiff, VariantKind

# Variant kinds whose families need a primary pick
RESOLVABLE_KINDS = frozenset({VariantKind.DSP, VariantKind.ANC, VariantKind.SWITCH})


def pick_best_member(members: Sequence[FamilyMember]):
    """Highest-quality member, or None when no member has a quality score."""
    best = None
    for member in members:
        if member.quality_score is None:
            continue
        if best is None or member.quality_score > best.quality_score:
            best = member
    return best


def resolve_best_variants(families: Mapping[str, Sequence[FamilyMember]]) -> VariantFlagDiff:
    """
    Compute which members must be flagged best / not-best.

    Only members whose current flag disagrees with the computed one are
    returned, so applying the diff and running again yields an empty diff.

    Example:
        {'f1': [A(quality=80, best=False), B(quality=92, best=False)]}
        -> to_mark_best=['B'], to_mark_not_best=[]
    """
    diff = VariantFlagDiff()
    for members in families.values():
        best = pick_best_member(members)
        if best is None:
            continue
        for member in members:
            if member is best:
                if member.current_best is not True:
                    diff.to_mark_best.append(member.id)
            elif member.current_best is not False:
                diff.to_mark_not_best.append(member.id)
    return diff


def group_family_members(rows: Iterable[Tuple[str, FamilyMember]]) -> Dict[str, List[FamilyMember]]:
    """Group flat (family_id, member) rows into families, preserving row order."""
    families: Dict[str, List[FamilyMember]] = {}
    for family_id, member in rows:
        if family_id is None:
            continue
        families.setdefault(family_id, []).append(member)
    return families


def select_resolvable_families(families: Mapping[str, Sequence[FamilyMember]]) -> Dict[str, List[FamilyMember]]:
    """Keep only families with at least one DSP, ANC or switch variant."""
    return {
        family_id: list(members)
        for family_id, members in families.items()
        if any(m.variant_kind in RESOLVABLE_KINDS for m in members)
    }


def apply_diff(families: Mapping[str, Sequence[FamilyMember]], diff: VariantFlagDiff) -> None:
    """Apply a diff to in-memory members (used by in-memory catalogs and dry runs)."""
    best_ids = set(diff.to_mark_best)
    not_best_ids = set(diff.to_mark_not_best)
    for members in families.values():
        for member in members:
            if member.id in best_ids:
                member.current_best = True
            elif member.id in not_best_ids:
                member.current_best = False
