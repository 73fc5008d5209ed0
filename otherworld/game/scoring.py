"""Realm → inheritance points.

Realm names are free text invented by the generator ("元婴后期",
"Nascent Soul (Late)"), so matching is by substring. When a realm matches
several tiers the highest score wins.
"""

import re

REALM_POINTS: dict[str, int] = {
    "凡人 (Mortal)": 0,
    "炼气期 (Qi Refining)": 1,
    "筑基期 (Foundation Establishment)": 2,
    "金丹期 (Golden Core)": 3,
    "元婴期 (Nascent Soul)": 5,
    "化神期 (Divinity Transformation)": 8,
    "人仙 (Human Immortal)": 12,
    "地仙 (Earth Immortal)": 15,
    "神仙 (Spirit Immortal)": 18,
    "天仙 (Heavenly Immortal)": 22,
    "太乙金仙 (Taiyi Golden Immortal)": 26,
    "大罗金仙 (Daluo Golden Immortal)": 30,
    "混元金仙 (Hunyuan Golden Immortal)": 40,
}

_KEY_RE = re.compile(r"^(.+?)(?:\s*\((.+?)\))?$")


def _keywords(key: str) -> tuple[str, str | None]:
    """Split a table key: '元婴期 (Nascent Soul)' → ('元婴', 'Nascent Soul')."""
    m = _KEY_RE.match(key)
    cn, en = m.group(1), m.group(2)
    # "期" (phase) is dropped so "元婴初期", "元婴大圆满" still match
    return re.sub(r"期$", "", cn), en


_TABLE: list[tuple[str, str | None, int]] = [
    (*_keywords(key), points) for key, points in REALM_POINTS.items()
]


def score_for_realm(realm: str) -> int:
    realm = realm.strip()
    best = 0
    for cn, en, points in _TABLE:
        if cn in realm or (en and en in realm):
            best = max(best, points)
    return best
